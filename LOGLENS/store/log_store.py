"""
Log Store Module - Shared, append-only buffer of classified lines

Handles:
- Sequence numbering and classification of ingested lines
- Optional bounded capacity with oldest-first eviction
- Lazy re-classification after a RuleSet install
- Filter enable/disable state and visibility passes
- Change notifications for search, marks and alerts
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Optional, Sequence

from LOGLENS.analysis.time_filter import TimeFilter
from LOGLENS.analysis.timestamp import parse_timestamp
from LOGLENS.rules.compiler import RuleSet
from LOGLENS.rules.matcher import Classification, classify, filters_allow, match_events

from .event_index import EventIndex
from .listener import StoreListener


@dataclass(eq=False)
class Line:
    """One ingested log line; only the cached classification is ever replaced"""
    seq: int
    text: str
    source: str
    timestamp: Optional[datetime] = None
    classification: Optional[Classification] = field(default=None, repr=False)


class LogStore:
    """
    Randomly indexable sequence of ingested lines

    All mutation (append, eviction, RuleSet install, clear) is serialized by a
    single lock. Readers take a consistent snapshot of the sequence range at
    the start of an operation; lines appended afterwards may or may not be
    seen, lines evicted meanwhile are skipped.
    """

    ITER_BATCH = 4096
    COMPACT_THRESHOLD = 4096

    def __init__(self, ruleset: Optional[RuleSet] = None, capacity: Optional[int] = None):
        """
        Initialize the store

        Args:
            ruleset: Initial RuleSet (an empty one if omitted)
            capacity: Maximum number of retained lines, None for unbounded
        """
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be a positive number of lines")

        self.capacity = capacity
        self.logger = logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._lines: List[Optional[Line]] = []
        self._head = 0  # index in _lines of the first live line
        self._first_seq = 0
        self._next_seq = 0

        self._ruleset = ruleset or RuleSet.empty()
        self._filter_enabled = self._ruleset.default_filter_states()
        self._time_filter: Optional[TimeFilter] = None
        self._filter_epoch = 0

        self.event_index = EventIndex(self._ruleset.event_names)
        self._listeners: List[StoreListener] = []

    # Properties

    @property
    def ruleset(self) -> RuleSet:
        return self._ruleset

    @property
    def first_seq(self) -> int:
        with self._lock:
            return self._first_seq

    @property
    def next_seq(self) -> int:
        with self._lock:
            return self._next_seq

    @property
    def filter_epoch(self) -> int:
        """Bumped whenever visibility inputs change"""
        return self._filter_epoch

    def __len__(self) -> int:
        with self._lock:
            return self._next_seq - self._first_seq

    # Listeners

    def subscribe(self, listener: StoreListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # Writes

    def append(self, text: str, source: str = "-") -> Line:
        """Append one line and return it with its sequence number assigned"""
        return self.extend([text], source)[0]

    def extend(self, texts: Sequence[str], source: str = "-") -> List[Line]:
        """
        Append lines from one source, preserving their order

        Lines are classified against the RuleSet current at call time before
        the lock is taken; if a new RuleSet is installed meanwhile they are
        re-classified under the lock so the EventIndex stays consistent.
        """
        ruleset = self._ruleset
        prepared = [(text, parse_timestamp(text), classify(text, ruleset)) for text in texts]

        appended = []
        with self._lock:
            current = self._ruleset
            for text, timestamp, classification in prepared:
                if classification.ruleset_version != current.version:
                    classification = classify(text, current)
                line = Line(self._next_seq, text, source, timestamp, classification)
                self._lines.append(line)
                self._next_seq += 1
                if classification.events:
                    self.event_index.record(line.seq, timestamp, classification.events)
                for listener in self._listeners:
                    listener.on_append(line)
                appended.append(line)
            self._evict_overflow()
        return appended

    def _evict_overflow(self) -> None:
        if self.capacity is None:
            return
        overflow = (self._next_seq - self._first_seq) - self.capacity
        if overflow <= 0:
            return

        for i in range(self._head, self._head + overflow):
            self._lines[i] = None
        self._head += overflow
        self._first_seq += overflow

        # Compact once the dead prefix dominates the list
        if self._head >= self.COMPACT_THRESHOLD and self._head * 2 >= len(self._lines):
            del self._lines[:self._head]
            self._head = 0

        self.event_index.evict_below(self._first_seq)
        for listener in self._listeners:
            listener.on_evict(self._first_seq)
        self.logger.debug(f"Evicted {overflow} line(s); first seq is now {self._first_seq}")

    def clear(self) -> None:
        """Drop every line; sequence numbers keep increasing afterwards"""
        with self._lock:
            self._lines = []
            self._head = 0
            self._first_seq = self._next_seq
            self.event_index.clear()
            for listener in self._listeners:
                listener.on_clear()
        self.logger.info("Log store cleared")

    def install_ruleset(self, ruleset: RuleSet) -> None:
        """
        Make a compiled RuleSet current

        Cached line classifications become stale and are recomputed on next
        access. Filter enabled states reset to the new rules' defaults and the
        EventIndex is rebuilt immediately.
        """
        with self._lock:
            self._ruleset = ruleset
            self._filter_enabled = ruleset.default_filter_states()
            self._filter_epoch += 1
            entries = (
                (line.seq, line.timestamp, match_events(line.text, ruleset))
                for line in self._live_lines()
            )
            self.event_index.rebuild(ruleset.event_names, entries)
            for listener in self._listeners:
                listener.on_ruleset(ruleset)
        self.logger.info(
            f"Installed ruleset v{ruleset.version}: {len(ruleset.highlights)} highlights, "
            f"{len(ruleset.events)} events, {len(ruleset.filters)} filters"
        )

    # Reads

    def _live_lines(self) -> List[Line]:
        return self._lines[self._head:]

    def get(self, seq: int) -> Line:
        """
        Get a line by sequence number

        Raises:
            IndexError: If the line was evicted or does not exist yet
        """
        with self._lock:
            if not self._first_seq <= seq < self._next_seq:
                raise IndexError(f"line {seq} not in store [{self._first_seq}, {self._next_seq})")
            return self._lines[self._head + seq - self._first_seq]

    def iter_range(self, lo: Optional[int] = None, hi: Optional[int] = None) -> Iterator[Line]:
        """
        Iterate lines with lo <= seq < hi

        Bounds are fixed when iteration starts. Lines are copied out in small
        locked batches so appends are never blocked for a whole scan.
        """
        with self._lock:
            lo = self._first_seq if lo is None else max(lo, self._first_seq)
            hi = self._next_seq if hi is None else min(hi, self._next_seq)

        for batch_start in range(lo, hi, self.ITER_BATCH):
            batch_end = min(batch_start + self.ITER_BATCH, hi)
            with self._lock:
                start = max(batch_start, self._first_seq)
                offset = self._head - self._first_seq
                batch = self._lines[start + offset:batch_end + offset] if start < batch_end else []
            yield from batch

    def classification(self, seq: int) -> Classification:
        return self._classification_of(self.get(seq), self._ruleset)

    @staticmethod
    def _classification_of(line: Line, ruleset: RuleSet) -> Classification:
        cached = line.classification
        if cached is not None and cached.ruleset_version == ruleset.version:
            return cached
        fresh = classify(line.text, ruleset)
        line.classification = fresh
        return fresh

    # Visibility

    def set_filter_enabled(self, index: int, enabled: bool) -> None:
        with self._lock:
            self._filter_enabled[index] = enabled
            self._filter_epoch += 1

    def toggle_filter(self, index: int) -> bool:
        """Flip a filter's enabled state and return the new state"""
        with self._lock:
            enabled = not self._filter_enabled[index]
            self.set_filter_enabled(index, enabled)
            return enabled

    def filter_states(self) -> List[bool]:
        with self._lock:
            return list(self._filter_enabled)

    def set_time_filter(self, time_filter: Optional[TimeFilter]) -> None:
        with self._lock:
            self._time_filter = time_filter
            self._filter_epoch += 1

    @property
    def time_filter(self) -> Optional[TimeFilter]:
        return self._time_filter

    def is_visible(self, seq: int) -> bool:
        line = self.get(seq)
        with self._lock:
            ruleset, enabled, time_filter = self._ruleset, list(self._filter_enabled), self._time_filter
        return self._visible(line, ruleset, enabled, time_filter)

    def _visible(self, line: Line, ruleset: RuleSet, enabled: List[bool],
                 time_filter: Optional[TimeFilter]) -> bool:
        if time_filter is not None and not time_filter.allows(line.timestamp):
            return False
        if not ruleset.filters:
            return True
        classification = self._classification_of(line, ruleset)
        return filters_allow(classification.filter_hits, ruleset.filters, enabled)

    def visible_seqs(self, lo: Optional[int] = None, hi: Optional[int] = None) -> List[int]:
        """Sequence numbers of visible lines in [lo, hi), in one linear pass"""
        with self._lock:
            ruleset, enabled, time_filter = self._ruleset, list(self._filter_enabled), self._time_filter
        return [
            line.seq for line in self.iter_range(lo, hi)
            if self._visible(line, ruleset, enabled, time_filter)
        ]

    def hidden_after(self, seq: int, limit: Optional[int] = None) -> List[int]:
        """
        Hidden lines directly following a line, up to the next visible one

        Args:
            seq: Line to start after
            limit: Stop after this many hidden lines
        """
        with self._lock:
            ruleset, enabled, time_filter = self._ruleset, list(self._filter_enabled), self._time_filter
        hidden = []
        for line in self.iter_range(seq + 1, None):
            if self._visible(line, ruleset, enabled, time_filter):
                break
            hidden.append(line.seq)
            if limit is not None and len(hidden) >= limit:
                break
        return hidden
