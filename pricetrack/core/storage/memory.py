"""内存对象存储与线程安全的回退缓存实现."""

import copy
import time
from collections import OrderedDict
from threading import Lock
from typing import Any

from pricetrack.core.exceptions import PersistenceUnavailableError

from .base import FallbackCache, ObjectStore


class InMemoryObjectStore(ObjectStore):
    """Dict-backed object store.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store. ``fail_reads``/``fail_writes`` simulate an
    unavailable backend.
    """

    backend_name = "memory"

    def __init__(self) -> None:
        self._objects: dict[str, tuple[Any, int]] = {}
        self._sequence = 0
        self._lock = Lock()
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    async def write(self, key: str, value: Any) -> None:
        if self.fail_writes:
            raise PersistenceUnavailableError(
                "object store write failed", operation="write", key=key, backend=self.backend_name
            )
        with self._lock:
            self._sequence += 1
            self._objects[key] = (copy.deepcopy(value), self._sequence)
            self.writes += 1

    async def read_latest(self, prefix: str) -> Any | None:
        if self.fail_reads:
            raise PersistenceUnavailableError(
                "object store read failed", operation="read", key=prefix, backend=self.backend_name
            )
        with self._lock:
            matches = [(seq, value) for key, (value, seq) in self._objects.items() if key.startswith(prefix)]
        if not matches:
            return None
        _, newest = max(matches, key=lambda item: item[0])
        return copy.deepcopy(newest)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)


class InMemoryFallbackCache(FallbackCache):
    """线程安全的LRU内存缓存, 条目默认不过期."""

    def __init__(self, max_size: int = 1000, ttl: float | None = None):
        """初始化内存缓存."""
        self.max_size = max_size
        self.ttl = ttl
        self._cache: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._lock = Lock()

    async def get(self, key: str) -> Any | None:
        """从缓存获取数据."""
        with self._lock:
            if key not in self._cache:
                return None

            value, expiry = self._cache[key]

            # 检查是否过期
            if expiry is not None and time.time() > expiry:
                del self._cache[key]
                return None

            # 移动到末尾（LRU）
            self._cache.move_to_end(key)
            return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        """设置缓存数据."""
        expiry = time.time() + self.ttl if self.ttl is not None else None

        with self._lock:
            if key in self._cache:
                del self._cache[key]

            # 如果缓存已满，删除最旧的条目
            while len(self._cache) >= self.max_size and self._cache:
                self._cache.popitem(last=False)

            self._cache[key] = (copy.deepcopy(value), expiry)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


__all__ = ["InMemoryObjectStore", "InMemoryFallbackCache"]
