"""Fixed-size cyclic scheduler over partition cursors."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class RoundRobin(Generic[T]):
    """A fixed sequence of items with a rotating pointer.

    The reader asks for :meth:`current` until that item runs dry and only
    then calls :meth:`rotate`, so a productive partition is drained before
    the next one is probed. The item set never changes after construction.

    Args:
        items: Items to cycle over. May be empty, in which case
            :meth:`current` raises and :meth:`rotate` does nothing.
    """

    def __init__(self, items: Iterable[T]):
        self._items: tuple[T, ...] = tuple(items)
        self._index = 0

    def current(self) -> T:
        """Item at the pointer. Does not move the pointer.

        Raises:
            IndexError: If there are no items.
        """
        if not self._items:
            raise IndexError("current() on an empty RoundRobin")
        return self._items[self._index]

    def rotate(self) -> None:
        """Move the pointer to the next item, wrapping at the end."""
        if self._items:
            self._index = (self._index + 1) % len(self._items)

    @property
    def index(self) -> int:
        return self._index

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"RoundRobin(size={len(self._items)}, index={self._index})"
