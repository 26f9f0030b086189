"""
Event Index Module - Per-event occurrence log for the timeline

Handles:
- Incremental recording of event occurrences as lines are classified
- Pruning of occurrences that reference evicted lines
- Full rebuild when a new RuleSet is installed
- Per-event enabled flags for the events list and timeline
"""
import bisect
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Occurrence:
    seq: int
    timestamp: Optional[datetime]


class EventIndex:
    """Mapping of event name to its occurrences ordered by line sequence number"""

    def __init__(self, tracked_names: Sequence[str] = ()):
        self._occurrences: Dict[str, List[Occurrence]] = {}
        self._enabled: Dict[str, bool] = {}
        self._lock = threading.Lock()
        self.reset(tracked_names)

    def reset(self, tracked_names: Sequence[str]) -> None:
        """Drop all occurrences and track the given names (enabled flags are kept)"""
        with self._lock:
            self._occurrences = {name: [] for name in tracked_names}
            self._enabled = {name: self._enabled.get(name, True) for name in tracked_names}

    def record(self, seq: int, timestamp: Optional[datetime], names: Iterable[str]) -> None:
        with self._lock:
            for name in names:
                self._occurrences.setdefault(name, []).append(Occurrence(seq, timestamp))
                self._enabled.setdefault(name, True)

    def rebuild(self, tracked_names: Sequence[str],
                entries: Iterable[Tuple[int, Optional[datetime], Sequence[str]]]) -> None:
        """Replace the index from (seq, timestamp, names) entries in seq order"""
        self.reset(tracked_names)
        for seq, timestamp, names in entries:
            if names:
                self.record(seq, timestamp, names)

    def evict_below(self, first_seq: int) -> None:
        """Drop every occurrence referencing a sequence number below first_seq"""
        with self._lock:
            for occurrences in self._occurrences.values():
                cut = bisect.bisect_left(occurrences, first_seq, key=lambda o: o.seq)
                del occurrences[:cut]

    def clear(self) -> None:
        with self._lock:
            for occurrences in self._occurrences.values():
                occurrences.clear()

    # Event enable/disable

    def set_enabled(self, name: str, enabled: bool) -> None:
        with self._lock:
            if name not in self._occurrences:
                raise KeyError(name)
            self._enabled[name] = enabled

    def is_enabled(self, name: str) -> bool:
        with self._lock:
            return self._enabled.get(name, True)

    def enabled_names(self) -> List[str]:
        with self._lock:
            return [name for name in self._occurrences if self._enabled.get(name, True)]

    # Read access

    def names(self) -> List[str]:
        with self._lock:
            return list(self._occurrences)

    def occurrences(self, name: str) -> List[Occurrence]:
        with self._lock:
            return list(self._occurrences.get(name, ()))

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {name: len(occ) for name, occ in self._occurrences.items()}

    def snapshot(self) -> Dict[str, List[Occurrence]]:
        """Copy of the whole index, safe to read while ingestion continues"""
        with self._lock:
            return {name: list(occ) for name, occ in self._occurrences.items()}

    def __getitem__(self, name: str) -> List[Occurrence]:
        with self._lock:
            return list(self._occurrences[name])

    def __contains__(self, name: str) -> bool:
        return name in self._occurrences

    def __len__(self) -> int:
        with self._lock:
            return sum(len(occ) for occ in self._occurrences.values())
