"""
Timeline Aggregator Module - Time-bucketed event intensity table

Handles:
- Resolving the time range covered by tracked event occurrences
- Counting occurrences per event in N equal-width buckets
- Mapping counts to intensity levels for display
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

from LOGLENS.store.event_index import EventIndex


class Intensity(Enum):
    """Relative activity of one timeline cell"""
    NONE = 0
    LOW = 1
    MEDIUM_LOW = 2
    MEDIUM_HIGH = 3
    HIGH = 4

    @property
    def glyph(self) -> str:
        """Single-character representation for the timeline panel"""
        glyphs = {
            Intensity.NONE: ".",
            Intensity.LOW: "░",
            Intensity.MEDIUM_LOW: "▒",
            Intensity.MEDIUM_HIGH: "▓",
            Intensity.HIGH: "█",
        }
        return glyphs[self]


def intensity(count: int, maximum: int) -> Intensity:
    """Map a cell count to an intensity level relative to the busiest cell"""
    if count <= 0 or maximum <= 0:
        return Intensity.NONE
    ratio = count / maximum
    if ratio <= 0.25:
        return Intensity.LOW
    if ratio <= 0.50:
        return Intensity.MEDIUM_LOW
    if ratio <= 0.75:
        return Intensity.MEDIUM_HIGH
    return Intensity.HIGH


@dataclass
class TimelineData:
    """Event name -> per-bucket counts over a resolved time range"""
    names: List[str]
    counts: Dict[str, List[int]]
    max_count: int
    start: datetime
    end: datetime
    buckets: int

    @property
    def bucket_width(self) -> timedelta:
        return (self.end - self.start) / self.buckets

    def bucket_bounds(self, index: int) -> Tuple[datetime, datetime]:
        """Half-open [start, end) of a bucket; the last one also holds the range end"""
        if not 0 <= index < self.buckets:
            raise IndexError(f"bucket {index} out of range 0..{self.buckets - 1}")
        width = self.bucket_width
        start = self.start + width * index
        end = self.end if index == self.buckets - 1 else self.start + width * (index + 1)
        return start, end

    def intensity(self, name: str, index: int) -> Intensity:
        return intensity(self.counts[name][index], self.max_count)

    def row(self, name: str) -> List[Intensity]:
        return [intensity(count, self.max_count) for count in self.counts[name]]


def build_timeline(event_index: EventIndex, buckets: int) -> Optional[TimelineData]:
    """
    Aggregate event occurrences into a bucketed intensity table

    Args:
        event_index: Occurrences to aggregate (only enabled events are used)
        buckets: Number of equal-width time buckets

    Returns:
        TimelineData, or None when there are fewer than two distinct
        timestamps to span or no buckets were requested
    """
    if buckets < 1:
        return None

    names = event_index.enabled_names()
    snapshot = event_index.snapshot()
    occurrences = {name: [o for o in snapshot.get(name, []) if o.timestamp is not None]
                   for name in names}

    stamps = [o.timestamp for occ in occurrences.values() for o in occ]
    if not stamps:
        return None
    start, end = min(stamps), max(stamps)
    if start == end:
        return None

    span = end - start
    counts = {name: [0] * buckets for name in names}
    max_count = 0
    for name, occ in occurrences.items():
        row = counts[name]
        for occurrence in occ:
            index = min(int((occurrence.timestamp - start) / span * buckets), buckets - 1)
            row[index] += 1
            max_count = max(max_count, row[index])

    return TimelineData(
        names=names,
        counts=counts,
        max_count=max_count,
        start=start,
        end=end,
        buckets=buckets,
    )
