"""
Search Engine Module - Query the log store and navigate matches

Handles:
- Literal or regex queries, case-sensitive or not
- Circular next/previous navigation over ordered matches
- Incremental extension of results as lines are appended
- Pruning of results when old lines are evicted
"""
import bisect
import logging
import re
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from LOGLENS.rules.compiler import PatternMatcher, build_matcher
from LOGLENS.store.listener import StoreListener
from LOGLENS.store.log_store import Line, LogStore


class SearchError(Exception):
    """Raised for a query that cannot be compiled"""

    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f"invalid search {query!r}: {reason}")


@dataclass
class SearchState:
    query: str
    regex: bool
    case_sensitive: bool
    matcher: PatternMatcher
    matches: List[int] = field(default_factory=list)
    cursor: Optional[int] = None
    scanned_upto: int = 0  # every seq below this has been checked


class SearchEngine(StoreListener):
    """
    Search over a LogStore

    The engine lock is never held while reading the store: the store calls
    on_append with its own lock held, so taking the locks in the opposite
    order would deadlock. Scans run unlocked and are installed afterwards
    unless a newer query superseded them.
    """

    def __init__(self, store: LogStore):
        self.store = store
        self.logger = logging.getLogger(__name__)
        self._state: Optional[SearchState] = None
        self._generation = 0
        self._lock = threading.Lock()
        store.subscribe(self)

    # Queries

    def search(self, query: str, regex: bool = False, case_sensitive: bool = False) -> List[int]:
        """
        Scan the whole store for a query and make it the active search

        Args:
            query: Literal text or regular expression
            regex: Treat query as a regular expression
            case_sensitive: Whether matching is case-sensitive

        Returns:
            Ordered list of matching sequence numbers

        Raises:
            SearchError: If a regex query does not compile; the previous
                search state is left untouched
        """
        if not query:
            self.clear_search()
            return []

        try:
            matcher = build_matcher(query, regex, case_sensitive)
        except re.error as e:
            raise SearchError(query, str(e)) from e

        with self._lock:
            self._generation += 1
            generation = self._generation

        hi = self.store.next_seq
        found = [line.seq for line in self.store.iter_range(None, hi) if matcher.matches(line.text)]

        with self._lock:
            if generation != self._generation:
                self.logger.debug(f"Discarding superseded search for {query!r}")
                return list(self._state.matches) if self._state else []
            self._state = SearchState(query, regex, case_sensitive, matcher, found, None, hi)

        self._catch_up(generation)
        self.logger.debug(f"Search {query!r} matched {len(self.matches)} line(s)")
        return self.matches

    def _catch_up(self, generation: int) -> None:
        """Scan lines appended between the initial snapshot and installation"""
        while True:
            first = self.store.first_seq
            hi = self.store.next_seq
            with self._lock:
                state = self._state
                if generation != self._generation or state is None:
                    return
                self._prune(first)
                lo = state.scanned_upto
                if lo >= hi:
                    return
                matcher = state.matcher

            found = [line.seq for line in self.store.iter_range(lo, hi) if matcher.matches(line.text)]

            with self._lock:
                if self._state is not state:
                    return
                if state.scanned_upto == lo:
                    state.matches.extend(found)
                    state.scanned_upto = hi

    def clear_search(self) -> None:
        with self._lock:
            self._generation += 1
            self._state = None

    # Navigation

    def next(self) -> Optional[int]:
        """Move to the next match, wrapping to the first; None if nothing matches"""
        with self._lock:
            state = self._state
            if state is None or not state.matches:
                return None
            state.cursor = 0 if state.cursor is None else (state.cursor + 1) % len(state.matches)
            return state.matches[state.cursor]

    def previous(self) -> Optional[int]:
        """Move to the previous match, wrapping to the last; None if nothing matches"""
        with self._lock:
            state = self._state
            if state is None or not state.matches:
                return None
            if state.cursor is None:
                state.cursor = len(state.matches) - 1
            else:
                state.cursor = (state.cursor - 1) % len(state.matches)
            return state.matches[state.cursor]

    def next_from(self, seq: int) -> Optional[int]:
        """Jump to the first match after a line, wrapping around"""
        with self._lock:
            state = self._state
            if state is None or not state.matches:
                return None
            state.cursor = bisect.bisect_right(state.matches, seq) % len(state.matches)
            return state.matches[state.cursor]

    def previous_from(self, seq: int) -> Optional[int]:
        """Jump to the last match before a line, wrapping around"""
        with self._lock:
            state = self._state
            if state is None or not state.matches:
                return None
            state.cursor = (bisect.bisect_left(state.matches, seq) - 1) % len(state.matches)
            return state.matches[state.cursor]

    # Read access

    @property
    def active(self) -> bool:
        return self._state is not None

    @property
    def query(self) -> Optional[str]:
        state = self._state
        return state.query if state else None

    @property
    def matches(self) -> List[int]:
        with self._lock:
            return list(self._state.matches) if self._state else []

    @property
    def cursor(self) -> Optional[int]:
        with self._lock:
            return self._state.cursor if self._state else None

    @property
    def current(self) -> Optional[int]:
        """Sequence number under the cursor"""
        with self._lock:
            state = self._state
            if state is None or state.cursor is None:
                return None
            return state.matches[state.cursor]

    def match_info(self) -> Tuple[int, int]:
        """(1-based cursor position or 0, total matches)"""
        with self._lock:
            state = self._state
            if state is None:
                return 0, 0
            position = state.cursor + 1 if state.cursor is not None else 0
            return position, len(state.matches)

    # Store notifications

    def _prune(self, first_seq: int) -> None:
        state = self._state
        if state is None:
            return
        state.scanned_upto = max(state.scanned_upto, first_seq)
        if not state.matches or state.matches[0] >= first_seq:
            return

        cut = bisect.bisect_left(state.matches, first_seq)
        del state.matches[:cut]
        if not state.matches:
            state.cursor = None
        elif state.cursor is not None:
            # A surviving cursor keeps its entry; an evicted one moves to the
            # nearest remaining match, which is the new first entry
            state.cursor = state.cursor - cut if state.cursor >= cut else 0

    def on_append(self, line: Line) -> None:
        with self._lock:
            state = self._state
            if state is None or line.seq != state.scanned_upto:
                return
            if state.matcher.matches(line.text):
                state.matches.append(line.seq)
            state.scanned_upto += 1

    def on_evict(self, first_seq: int) -> None:
        with self._lock:
            self._prune(first_seq)

    def on_clear(self) -> None:
        with self._lock:
            if self._state is not None:
                self._state.matches.clear()
                self._state.cursor = None
