"""
Expansion Module - Show the lines a filter hides below a visible line

An expansion is keyed by the sequence number of a visible line and holds the
hidden lines that follow it, up to the next visible line.
"""
import bisect
import threading
from typing import Dict, List, Optional

from LOGLENS.store.listener import StoreListener


class Expansions(StoreListener):
    """Expanded lines of the filtered view"""

    def __init__(self):
        self._expanded: Dict[int, List[int]] = {}  # {visible seq: hidden seqs}
        self._lock = threading.Lock()

    def toggle(self, seq: int, hidden: List[int]) -> bool:
        """
        Expand or collapse a visible line

        Args:
            seq: Visible line to expand below
            hidden: Hidden lines following it

        Returns:
            True if the line is expanded afterwards
        """
        with self._lock:
            if seq in self._expanded:
                del self._expanded[seq]
                return False
            if not hidden:
                return False
            self._expanded[seq] = sorted(hidden)
            return True

    def is_expanded(self, seq: int) -> bool:
        with self._lock:
            return seq in self._expanded

    def expanded_lines(self, seq: int) -> List[int]:
        with self._lock:
            return list(self._expanded.get(seq, []))

    def find_parent(self, seq: int) -> Optional[int]:
        """Visible line under which a shown hidden line is expanded"""
        with self._lock:
            for parent, hidden in self._expanded.items():
                pos = bisect.bisect_left(hidden, seq)
                if pos < len(hidden) and hidden[pos] == seq:
                    return parent
            return None

    def merge(self, visible: List[int]) -> List[int]:
        """Visible lines with the expanded hidden lines placed after their parents"""
        with self._lock:
            if not self._expanded:
                return list(visible)
            merged = []
            for seq in visible:
                merged.append(seq)
                merged.extend(self._expanded.get(seq, ()))
            return merged

    def total(self) -> int:
        with self._lock:
            return sum(len(hidden) for hidden in self._expanded.values())

    def clear(self) -> None:
        with self._lock:
            self._expanded.clear()

    def __len__(self) -> int:
        return len(self._expanded)

    # Store notifications

    def on_evict(self, first_seq: int) -> None:
        with self._lock:
            for parent in [p for p in self._expanded if p < first_seq]:
                del self._expanded[parent]

    def on_clear(self) -> None:
        self.clear()

    def on_ruleset(self, ruleset) -> None:
        self.clear()
