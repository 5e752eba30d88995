"""最近请求的固定容量环形缓冲区。

缓冲区独占自己的存储，只通过 append / snapshot / latest / size 等窄接口访问，
内部用一把锁保护；写满后覆盖最旧的记录。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, List, Optional, TypeVar
from uuid import uuid4


T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LiveRequest:
    """一次已完成调用的元数据（不含消息内容与令牌）。"""

    method: str
    path: str
    status: int
    duration_ms: float
    model: Optional[str] = None
    error: Optional[str] = None
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class BufferStats:
    size: int
    capacity: int
    usage: float
    last_add: Optional[datetime] = None


class RingBuffer(Generic[T]):
    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._items: List[Optional[T]] = [None] * capacity
        self._capacity = capacity
        self._head = 0
        self._size = 0
        self._last_add: Optional[datetime] = None
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, item: T) -> None:
        with self._lock:
            self._items[self._head] = item
            self._head = (self._head + 1) % self._capacity
            if self._size < self._capacity:
                self._size += 1
            self._last_add = _utcnow()

    def snapshot(self) -> List[T]:
        """按插入顺序返回全部元素（最旧在前）。"""

        with self._lock:
            return self._tail(self._size)

    def latest(self, n: int) -> List[T]:
        """返回最新的 n 个元素，仍按插入顺序排列。"""

        with self._lock:
            return self._tail(max(0, min(n, self._size)))

    def size(self) -> int:
        with self._lock:
            return self._size

    def clear(self) -> None:
        with self._lock:
            self._items = [None] * self._capacity
            self._head = 0
            self._size = 0

    def stats(self) -> BufferStats:
        with self._lock:
            return BufferStats(
                size=self._size,
                capacity=self._capacity,
                usage=self._size / self._capacity,
                last_add=self._last_add,
            )

    def _tail(self, n: int) -> List[T]:
        # 调用方需持有锁
        start = self._head - n
        return [self._items[(start + i) % self._capacity] for i in range(n)]  # type: ignore[misc]

    def __len__(self) -> int:
        return self.size()
