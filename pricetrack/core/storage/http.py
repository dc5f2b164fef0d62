"""HTTP blob storage adapter.

Talks to a blob service with a list/download/put API: ``GET {base_url}``
lists blobs under a prefix, each listed blob carries a download URL, and
``PUT {base_url}/{key}`` overwrites the blob at a fixed pathname.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from pricetrack.core.exceptions import ConfigurationError, PersistenceUnavailableError
from pricetrack.core.logging import get_logger

from .base import ObjectStore

logger = get_logger(__name__)

DEFAULT_BLOB_URL = "https://blob.vercel-storage.com"


class HttpBlobStore(ObjectStore):
    """Object store backed by an HTTP blob service."""

    backend_name = "http"

    def __init__(
        self,
        token: str | None,
        base_url: str = DEFAULT_BLOB_URL,
        *,
        timeout: float = 10.0,
        list_limit: int = 10,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ConfigurationError("HttpBlobStore requires a blob read/write token")
        if not base_url:
            raise ConfigurationError("HttpBlobStore requires a base URL")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.list_limit = max(list_limit, 1)
        self._token = token
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> HttpBlobStore:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"authorization": f"Bearer {self._token}"}

    def _unavailable(self, message: str, operation: str, key: str) -> PersistenceUnavailableError:
        return PersistenceUnavailableError(message, operation=operation, key=key, backend=self.backend_name)

    async def write(self, key: str, value: Any) -> None:
        client = self._ensure_client()
        payload = json.dumps(value, default=str, ensure_ascii=False)
        headers = {
            **self._auth_headers,
            "content-type": "application/json",
            "x-content-type": "application/json",
            "x-add-random-suffix": "0",
        }
        try:
            response = await client.put(f"{self.base_url}/{key.lstrip('/')}", content=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise self._unavailable(f"blob upload failed: {exc}", "write", key) from exc
        if response.status_code >= 400:
            raise self._unavailable(f"blob upload failed with status {response.status_code}", "write", key)

    async def read_latest(self, prefix: str) -> Any | None:
        client = self._ensure_client()
        prefix = prefix.lstrip("/")
        try:
            response = await client.get(
                self.base_url,
                params={"prefix": prefix, "limit": self.list_limit},
                headers=self._auth_headers,
            )
        except httpx.HTTPError as exc:
            raise self._unavailable(f"blob listing failed: {exc}", "list", prefix) from exc
        if response.status_code >= 400:
            raise self._unavailable(f"blob listing failed with status {response.status_code}", "list", prefix)

        try:
            blobs = response.json().get("blobs") or []
        except (ValueError, AttributeError) as exc:
            raise self._unavailable("blob listing is not valid JSON", "list", prefix) from exc

        candidates = [
            blob for blob in blobs if isinstance(blob, dict) and str(blob.get("pathname", "")).startswith(prefix)
        ]
        if not candidates:
            return None
        newest = max(candidates, key=lambda blob: str(blob.get("uploadedAt") or ""))
        url = newest.get("downloadUrl") or newest.get("url")
        if not url:
            raise self._unavailable("listed blob has no download URL", "read", prefix)

        try:
            download = await client.get(url)
        except httpx.HTTPError as exc:
            raise self._unavailable(f"blob download failed: {exc}", "read", prefix) from exc
        if download.status_code == 404:
            logger.debug("Listed blob vanished before download", key=newest.get("pathname"))
            return None
        if download.status_code >= 400:
            raise self._unavailable(f"blob download failed with status {download.status_code}", "read", prefix)
        if not download.content:
            return None
        try:
            return download.json()
        except ValueError as exc:
            raise self._unavailable("blob content is not valid JSON", "read", prefix) from exc

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


__all__ = ["HttpBlobStore", "DEFAULT_BLOB_URL"]
