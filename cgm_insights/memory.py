"""Fixed-capacity feedback memory used by the learning engine."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from itertools import islice
from typing import Deque, Generic, Iterator, TypeVar

T = TypeVar("T")


@dataclass
class BoundedMemory(Generic[T]):
    """FIFO store that evicts its oldest entry once ``capacity`` is reached."""

    capacity: int
    _entries: Deque[T] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._entries = deque(maxlen=self.capacity)

    def append(self, entry: T) -> None:
        self._entries.append(entry)

    def recent(self, count: int) -> list[T]:
        """Return up to ``count`` newest entries, oldest first."""

        if count <= 0:
            return []
        newest = list(islice(reversed(self._entries), count))
        newest.reverse()
        return newest

    def snapshot(self) -> tuple[T, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries)
