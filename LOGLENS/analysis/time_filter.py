"""
Time Filter Module - Restrict visible lines to a time window
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .timestamp import parse_timestamp


@dataclass(frozen=True)
class TimeFilter:
    """Inclusive [start, end] window; lines without a timestamp always pass"""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"time filter start {self.start} is after end {self.end}")

    def allows(self, timestamp: Optional[datetime]) -> bool:
        if timestamp is None:
            return True
        return self.start <= timestamp <= self.end


def parse_time_bound(text: str) -> datetime:
    """
    Parse a user-entered time bound using the log timestamp formats

    Raises:
        ValueError: If no supported timestamp is found
    """
    parsed = parse_timestamp(text.strip())
    if parsed is None:
        raise ValueError(f"unrecognized time: {text!r}")
    return parsed
