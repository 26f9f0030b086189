import logging
import queue
from datetime import datetime, timezone
from typing import List, Optional

from LOGLENS.log_analysis import alert
from LOGLENS.store.listener import StoreListener


class AlertManager(StoreListener):
    """Turns critical lines appended to the store into queued alerts"""

    def __init__(self, maxsize: int = 1000, alert_queue: Optional[queue.Queue] = None):
        self.__alert_queue = alert_queue if alert_queue is not None else queue.Queue(maxsize=maxsize)
        self.number_of_alerts = self.__alert_queue.qsize()
        self.dropped = 0
        self.logger = logging.getLogger(__name__)

    def add_alert(self, new_alert: alert.Alert) -> None:
        try:
            self.__alert_queue.put_nowait(new_alert)
            self.number_of_alerts += 1
        except queue.Full:
            self.dropped += 1
        self.logger.log(alert.ALERT, f"{new_alert.detected_by}: {new_alert.message}")

    def on_append(self, line) -> None:
        classification = line.classification
        if classification is None or not classification.critical:
            return
        self.add_alert(alert.Alert(
            timestamp=line.timestamp or datetime.now(timezone.utc),
            alertLevel="Critical",
            message=line.text,
            detected_by=", ".join(classification.events),
            seq=line.seq,
        ))

    def drain(self) -> List[alert.Alert]:
        """Remove and return every pending alert, oldest first"""
        pending = []
        while True:
            try:
                pending.append(self.__alert_queue.get_nowait())
            except queue.Empty:
                break
        return pending

    def empty_queue(self) -> None:
        self.drain()

    @property
    def pending(self) -> int:
        return self.__alert_queue.qsize()
