import logging
import os
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

LOG_FILE = "loglens.log"

# Raised above CRITICAL so critical-line alerts always reach the log file
ALERT = 51

logging.addLevelName(ALERT, "ALERT")


def setup_logging(log_dir: str = "app_log", level: int = logging.INFO) -> str:
    """
    Configure application logging to a file under log_dir

    The terminal belongs to the UI, so nothing is written to stderr.

    Returns:
        Path of the log file
    """
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    log_path = os.path.join(log_dir, LOG_FILE)
    logging.basicConfig(
        filename=log_path,
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return log_path


class Alert(BaseModel):
    timestamp: datetime
    alertLevel: str
    message: str
    detected_by: str
    seq: Optional[int] = None
