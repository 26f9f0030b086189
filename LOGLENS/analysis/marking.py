"""
Marking Module - User bookmarks on log lines

Marks reference stable line sequence numbers, so they survive filtering and
only disappear when their line is evicted or the buffer is cleared.
"""
import bisect
import threading
from dataclasses import dataclass
from typing import List, Optional

from LOGLENS.store.listener import StoreListener


@dataclass
class Mark:
    seq: int
    name: Optional[str] = None


class Marking(StoreListener):
    """Ordered set of marked lines with optional names"""

    def __init__(self):
        self._seqs: List[int] = []
        self._names: dict = {}  # {seq: name}
        self._lock = threading.Lock()

    def toggle(self, seq: int) -> bool:
        """Mark or unmark a line; returns True if the line is now marked"""
        with self._lock:
            pos = bisect.bisect_left(self._seqs, seq)
            if pos < len(self._seqs) and self._seqs[pos] == seq:
                del self._seqs[pos]
                self._names.pop(seq, None)
                return False
            self._seqs.insert(pos, seq)
            return True

    def set_name(self, seq: int, name: str) -> None:
        """Name an existing mark, marking the line first if needed"""
        with self._lock:
            pos = bisect.bisect_left(self._seqs, seq)
            if pos == len(self._seqs) or self._seqs[pos] != seq:
                self._seqs.insert(pos, seq)
            self._names[seq] = name

    def unmark(self, seq: int) -> None:
        with self._lock:
            pos = bisect.bisect_left(self._seqs, seq)
            if pos < len(self._seqs) and self._seqs[pos] == seq:
                del self._seqs[pos]
                self._names.pop(seq, None)

    def is_marked(self, seq: int) -> bool:
        with self._lock:
            pos = bisect.bisect_left(self._seqs, seq)
            return pos < len(self._seqs) and self._seqs[pos] == seq

    def marks(self) -> List[Mark]:
        with self._lock:
            return [Mark(seq, self._names.get(seq)) for seq in self._seqs]

    def next_mark(self, seq: int) -> Optional[int]:
        """First mark after seq, wrapping to the first mark"""
        with self._lock:
            if not self._seqs:
                return None
            pos = bisect.bisect_right(self._seqs, seq)
            return self._seqs[pos % len(self._seqs)]

    def previous_mark(self, seq: int) -> Optional[int]:
        """Last mark before seq, wrapping to the last mark"""
        with self._lock:
            if not self._seqs:
                return None
            pos = bisect.bisect_left(self._seqs, seq)
            return self._seqs[pos - 1]

    def __len__(self) -> int:
        return len(self._seqs)

    # Store notifications

    def on_evict(self, first_seq: int) -> None:
        with self._lock:
            cut = bisect.bisect_left(self._seqs, first_seq)
            for seq in self._seqs[:cut]:
                self._names.pop(seq, None)
            del self._seqs[:cut]

    def on_clear(self) -> None:
        with self._lock:
            self._seqs.clear()
            self._names.clear()
