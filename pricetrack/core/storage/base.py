"""对象存储与回退缓存接口定义."""

from abc import ABC, abstractmethod
from typing import Any


class ObjectStore(ABC):
    """Key-addressed JSON blob store.

    Writes overwrite (last write wins, no compare-and-swap). Both operations
    raise :class:`PersistenceUnavailableError` when the backend cannot be
    reached; callers decide whether to absorb it.
    """

    backend_name: str = "object-store"

    @abstractmethod
    async def write(self, key: str, value: Any) -> None:
        """Overwrite the object stored under ``key``."""

    @abstractmethod
    async def read_latest(self, prefix: str) -> Any | None:
        """Return the newest object whose key starts with ``prefix``, or None."""

    async def close(self) -> None:
        """Release backend resources."""


class FallbackCache(ABC):
    """Process-local key/value map used when the object store is degraded."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """从缓存获取数据."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """设置缓存数据."""


__all__ = ["ObjectStore", "FallbackCache"]
