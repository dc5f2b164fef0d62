"""HTTP blob存储测试 (httpx.MockTransport)"""

import json

import httpx
import pytest

from pricetrack.core.exceptions import ConfigurationError, PersistenceUnavailableError
from pricetrack.core.storage import HttpBlobStore

BASE_URL = "https://blob.example.test"


class FakeBlobService:
    """最小的list/put/download服务"""

    def __init__(self):
        self.blobs: dict[str, tuple[str, str]] = {}
        self.requests: list[httpx.Request] = []
        self._clock = 0
        self.list_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.lstrip("/")
        if request.method == "PUT":
            self._clock += 1
            self.blobs[path] = (request.content.decode(), f"2024-01-01T00:00:{self._clock:02d}Z")
            return httpx.Response(200, json={"pathname": path})
        if request.method == "GET" and path.startswith("download/"):
            name = path.removeprefix("download/")
            if name not in self.blobs:
                return httpx.Response(404)
            return httpx.Response(200, content=self.blobs[name][0].encode())
        if request.method == "GET" and not path:
            if self.list_status != 200:
                return httpx.Response(self.list_status)
            prefix = request.url.params.get("prefix", "")
            blobs = [
                {"pathname": name, "uploadedAt": uploaded, "downloadUrl": f"{BASE_URL}/download/{name}"}
                for name, (_, uploaded) in self.blobs.items()
                if name.startswith(prefix)
            ]
            return httpx.Response(200, json={"blobs": blobs})
        return httpx.Response(405)


@pytest.fixture
def service():
    return FakeBlobService()


@pytest.fixture
def store(service):
    client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    return HttpBlobStore("token-123", BASE_URL, client=client)


def test_token_required():
    with pytest.raises(ConfigurationError):
        HttpBlobStore(None)


@pytest.mark.asyncio
async def test_write_puts_json_with_fixed_pathname(store, service):
    await store.write("price-history/998877.json", [{"numericValue": 123.5}])

    request = service.requests[-1]
    assert request.method == "PUT"
    assert request.url.path == "/price-history/998877.json"
    assert request.headers["authorization"] == "Bearer token-123"
    assert request.headers["x-add-random-suffix"] == "0"
    assert json.loads(request.content) == [{"numericValue": 123.5}]


@pytest.mark.asyncio
async def test_read_latest_downloads_newest_blob(store, service):
    await store.write("net-price/a.json", {"v": 1})
    await store.write("net-price/b.json", {"v": 2})

    assert await store.read_latest("net-price/a.json") == {"v": 1}
    assert await store.read_latest("net-price/") == {"v": 2}
    assert await store.read_latest("price-history/") is None


@pytest.mark.asyncio
async def test_listing_failure_is_unavailable(store, service):
    service.list_status = 503

    with pytest.raises(PersistenceUnavailableError) as exc_info:
        await store.read_latest("net-price/a.json")
    assert exc_info.value.context["backend"] == "http"


@pytest.mark.asyncio
async def test_write_failure_is_unavailable():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    store = HttpBlobStore("token-123", BASE_URL, client=client)

    with pytest.raises(PersistenceUnavailableError):
        await store.write("price-history/1.json", [])


@pytest.mark.asyncio
async def test_transport_error_is_unavailable():
    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = HttpBlobStore("token-123", BASE_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(broken)))

    with pytest.raises(PersistenceUnavailableError):
        await store.read_latest("price-history/1.json")
