"""
History Module - Recall of previously entered queries and patterns
"""
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class History(Generic[T]):
    """
    Entries in insertion order, without duplicates

    previous_record() walks from the newest entry towards the oldest;
    next_record() walks back and leaves navigation after the newest.
    """

    def __init__(self, entries: Optional[List[T]] = None):
        self._entries: List[T] = list(entries or [])
        self._index: Optional[int] = None

    def add(self, entry: T) -> None:
        """Record an entry unless it is already known; ends any navigation"""
        if entry not in self._entries:
            self._entries.append(entry)
        self._index = None

    def previous_record(self) -> Optional[T]:
        """Older entry, or None once the oldest is reached"""
        if not self._entries:
            return None
        if self._index is None:
            self._index = len(self._entries) - 1
        elif self._index == 0:
            return None
        else:
            self._index -= 1
        return self._entries[self._index]

    def next_record(self) -> Optional[T]:
        """Newer entry, or None when not navigating or past the newest"""
        if self._index is None:
            return None
        if self._index + 1 >= len(self._entries):
            self._index = None
            return None
        self._index += 1
        return self._entries[self._index]

    def reset(self) -> None:
        self._index = None

    @property
    def entries(self) -> List[T]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
