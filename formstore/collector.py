"""Amortized-doubling sequence builder used while draining query cursors."""

from __future__ import annotations

from typing import Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")

INITIAL_CAPACITY = 10


class GrowableCollector(Generic[T]):
    """Append-only buffer that doubles its backing storage when full.

    Slots are preallocated so ``append`` only writes into an existing slot;
    when the next append would overflow, the backing list grows to twice its
    size. Elements come back out in append order and none is ever dropped.
    """

    def __init__(self, initial_capacity: int = INITIAL_CAPACITY) -> None:
        if initial_capacity < 1:
            raise ValueError("initial_capacity must be at least 1")
        self._slots: List[Optional[T]] = [None] * initial_capacity
        self._size = 0

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def append(self, item: T) -> None:
        if self._size >= len(self._slots):
            self._grow()
        self._slots[self._size] = item
        self._size += 1

    def _grow(self) -> None:
        self._slots.extend([None] * len(self._slots))

    def to_list(self) -> List[T]:
        """Return the collected elements, trimmed to the number appended."""

        return list(self)

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[T]:
        for index in range(self._size):
            yield self._slots[index]  # type: ignore[misc]

    def __repr__(self) -> str:
        return f"GrowableCollector(size={self._size}, capacity={self.capacity})"
