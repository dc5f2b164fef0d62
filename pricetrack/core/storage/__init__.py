"""Object storage adapters and the process-local fallback cache."""

from pricetrack.core.storage.base import FallbackCache, ObjectStore
from pricetrack.core.storage.duckdb import DuckDBObjectStore
from pricetrack.core.storage.factory import build_fallback_cache, build_object_store
from pricetrack.core.storage.http import DEFAULT_BLOB_URL, HttpBlobStore
from pricetrack.core.storage.memory import InMemoryFallbackCache, InMemoryObjectStore

__all__ = [
    "ObjectStore",
    "FallbackCache",
    "InMemoryObjectStore",
    "InMemoryFallbackCache",
    "DuckDBObjectStore",
    "HttpBlobStore",
    "DEFAULT_BLOB_URL",
    "build_object_store",
    "build_fallback_cache",
]
