"""Read/write gateway combining the object store with the fallback cache.

Every document (a series or a backlog) is read and written whole. The
gateway absorbs :class:`PersistenceUnavailableError`: failed reads fall back
to the process-local cache, failed writes are mirrored into it and the key is
remembered as unsynced so this process keeps reading its own writes.

Read-modify-write through the gateway is not atomic. Two concurrent writers
of the same key can lose one another's update; the newest write wins.
"""

from __future__ import annotations

from typing import Any

from pricetrack.core.exceptions import PersistenceUnavailableError
from pricetrack.core.logging import get_logger
from pricetrack.core.storage import FallbackCache, InMemoryFallbackCache, ObjectStore

logger = get_logger(__name__)


class DocumentGateway:
    """Whole-document persistence for one metric kind."""

    def __init__(
        self,
        object_store: ObjectStore,
        fallback_cache: FallbackCache | None = None,
        *,
        metric_kind: str,
    ) -> None:
        self.object_store = object_store
        self.fallback_cache = fallback_cache or InMemoryFallbackCache()
        self.metric_kind = metric_kind
        self._unsynced: set[str] = set()

    async def read(self, key: str) -> Any | None:
        if key in self._unsynced:
            cached = await self.fallback_cache.get(key)
            if cached is not None:
                return cached
        try:
            return await self.object_store.read_latest(key)
        except PersistenceUnavailableError as exc:
            logger.warning(
                "Object store read failed, serving fallback cache",
                metric_kind=self.metric_kind,
                error_code=exc.error_code,
                key=key,
                error=exc.message,
            )
            return await self.fallback_cache.get(key)

    async def write(self, key: str, value: Any) -> bool:
        """Persist ``value``; returns False when only the fallback cache holds it."""
        try:
            await self.object_store.write(key, value)
        except PersistenceUnavailableError as exc:
            logger.error(
                "Object store write failed, value kept in process memory only",
                metric_kind=self.metric_kind,
                error_code=exc.error_code,
                key=key,
                error=exc.message,
            )
            await self.fallback_cache.set(key, value)
            self._unsynced.add(key)
            return False
        await self.fallback_cache.set(key, value)
        self._unsynced.discard(key)
        return True

    @property
    def unsynced_keys(self) -> frozenset[str]:
        return frozenset(self._unsynced)


__all__ = ["DocumentGateway"]
