from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Generic, Hashable, Iterable, Set, TypeVar

T = TypeVar("T")


class WorkQueue(Generic[T]):
    """FIFO that admits each value at most once.

    Identity is decided by `key` (defaults to the value itself). Values
    that were dequeued still count as seen, so they are never re-admitted.
    """

    def __init__(self, key: Callable[[T], Hashable] | None = None):
        self._key = key or (lambda v: v)
        self._seen: Set[Hashable] = set()
        self._pending: Deque[T] = deque()
        self._dequeued = 0

    def enqueue(self, value: T) -> bool:
        k = self._key(value)
        if k in self._seen:
            return False
        self._seen.add(k)
        self._pending.append(value)
        return True

    def dequeue(self) -> T:
        if not self._pending:
            raise IndexError("dequeue from an empty WorkQueue")
        value = self._pending.popleft()
        self._dequeued += 1
        return value

    def peek(self) -> T:
        if not self._pending:
            raise IndexError("peek into an empty WorkQueue")
        return self._pending[0]

    def load(self, values: Iterable[T]) -> int:
        return sum(1 for v in values if self.enqueue(v))

    @property
    def count(self) -> int:
        return len(self._pending)

    @property
    def distinct_count(self) -> int:
        return len(self._seen)

    @property
    def dequeued_count(self) -> int:
        return self._dequeued

    def __len__(self) -> int:
        return len(self._pending)
