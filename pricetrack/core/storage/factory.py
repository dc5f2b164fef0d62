"""Build the configured object store and fallback cache."""

from __future__ import annotations

from pricetrack.core.config import StorageConfig
from pricetrack.core.logging import get_logger

from .base import FallbackCache, ObjectStore
from .duckdb import DuckDBObjectStore
from .http import HttpBlobStore
from .memory import InMemoryFallbackCache, InMemoryObjectStore

logger = get_logger(__name__)


def build_object_store(config: StorageConfig) -> ObjectStore:
    """Create the object store selected by ``config.backend``.

    The HTTP backend without a token degrades to the in-memory store.
    """

    if config.backend == "duckdb":
        return DuckDBObjectStore(db_path=config.duckdb_path)
    if config.backend == "http":
        if not config.blob_token:
            logger.warning("No blob token configured, keeping history in process memory only")
            return InMemoryObjectStore()
        return HttpBlobStore(config.blob_token, config.blob_base_url, timeout=config.timeout)
    return InMemoryObjectStore()


def build_fallback_cache(config: StorageConfig) -> FallbackCache:
    return InMemoryFallbackCache(max_size=config.fallback_cache_size)


__all__ = ["build_object_store", "build_fallback_cache"]
