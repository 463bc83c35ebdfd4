"""
Bounded snapshot history for ghost trails and trend display.

Entries are value copies taken at append time, so later snapshots can never
change what was recorded. There is no API to modify a stored entry.
"""

from __future__ import annotations

from collections import deque
from typing import Iterator, Optional

from ..types import HISTORY_CAPACITY, Snapshot


class HistoryBuffer:
    """
    FIFO of the last `capacity` snapshots, oldest evicted first.

    Thread-safety: NOT thread-safe on its own. DepthEngine serializes access.
    """

    __slots__ = ('_capacity', '_entries')

    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._entries: deque[Snapshot] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, snapshot: Snapshot) -> None:
        """Store a copy at the tail; the head drops off once capacity is exceeded."""
        self._entries.append(snapshot.copy())

    def read_from_most_recent(self, k: int) -> Optional[Snapshot]:
        """
        Snapshot `k` positions behind the newest (k=0 is the newest).

        Returns None if the buffer isn't that deep yet.
        """
        if k < 0:
            raise ValueError(f"offset must be >= 0, got {k}")
        if k >= len(self._entries):
            return None
        return self._entries[-1 - k]

    def snapshots(self) -> tuple[Snapshot, ...]:
        """All entries, oldest first."""
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(tuple(self._entries))
