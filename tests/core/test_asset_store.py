from __future__ import annotations

from typing import Any, Callable

from botocore.exceptions import ClientError
import httpx
import pytest

from catalog_sync.config import AssetStoreConfig
from catalog_sync.core.asset_store import AssetStore
from catalog_sync.errors import ConfigurationError, RelocationError


class FakeS3:
    def __init__(self, *, head_error_code: str = "404") -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.head_error_code = head_error_code
        self.puts = 0

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        if Key in self.objects:
            return {"ContentLength": len(self.objects[Key]["Body"])}
        raise ClientError(
            {"Error": {"Code": self.head_error_code, "Message": "missing"}}, "HeadObject"
        )

    def put_object(self, **params: Any) -> dict[str, Any]:
        assert params["Bucket"] == "catalog"
        self.puts += 1
        self.objects[params["Key"]] = params
        return {"ETag": "etag"}


def _config(**overrides: Any) -> AssetStoreConfig:
    values: dict[str, Any] = {
        "endpoint_url": "https://s3.test",
        "bucket": "catalog",
        "access_key_id": "key",
        "secret_access_key": "secret",
        "region": "ams3",
        "public_base_url": "https://cdn.test",
        "timeout_seconds": 5.0,
        "max_bytes": 1024,
    }
    values.update(overrides)
    return AssetStoreConfig(**values)


def _store(
    handler: Callable[[httpx.Request], httpx.Response],
    s3: FakeS3,
    **overrides: Any,
) -> AssetStore:
    return AssetStore(_config(**overrides), s3_client=s3, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_relocate_downloads_and_uploads_new_objects() -> None:
    s3 = FakeS3()

    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://img.test/poster.jpg"
        return httpx.Response(200, content=b"jpeg-bytes", headers={"Content-Type": "image/jpeg"})

    store = _store(handler, s3)
    try:
        url = await store.relocate("images/tt1/poster/poster.jpg", "https://img.test/poster.jpg")
    finally:
        await store.close()

    assert url == "https://cdn.test/images/tt1/poster/poster.jpg"
    stored = s3.objects["images/tt1/poster/poster.jpg"]
    assert stored["Body"] == b"jpeg-bytes"
    assert stored["ContentType"] == "image/jpeg"


@pytest.mark.asyncio
async def test_relocate_skips_existing_objects() -> None:
    s3 = FakeS3()
    s3.objects["images/tt1/poster/poster.jpg"] = {"Body": b"old"}

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        raise AssertionError("existing objects must not be downloaded again")

    store = _store(handler, s3)
    url = await store.relocate("/images/tt1/poster/poster.jpg", "https://img.test/poster.jpg")
    await store.close()

    assert url == "https://cdn.test/images/tt1/poster/poster.jpg"
    assert s3.puts == 0


@pytest.mark.asyncio
async def test_relocate_follows_redirects() -> None:
    s3 = FakeS3()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old.jpg":
            return httpx.Response(302, headers={"Location": "https://img.test/new.jpg"})
        return httpx.Response(200, content=b"moved")

    store = _store(handler, s3)
    await store.relocate("images/tt1/background/old.jpg", "https://img.test/old.jpg")
    await store.close()

    assert s3.objects["images/tt1/background/old.jpg"]["Body"] == b"moved"


@pytest.mark.asyncio
async def test_source_errors_raise_relocation_error() -> None:
    s3 = FakeS3()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    store = _store(handler, s3)
    with pytest.raises(RelocationError) as excinfo:
        await store.relocate("images/tt1/poster/missing.jpg", "https://img.test/missing.jpg")
    await store.close()

    assert excinfo.value.destination == "images/tt1/poster/missing.jpg"
    assert excinfo.value.source_url == "https://img.test/missing.jpg"
    assert s3.puts == 0


@pytest.mark.asyncio
async def test_oversized_sources_are_rejected() -> None:
    s3 = FakeS3()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"x" * 32)

    store = _store(handler, s3, max_bytes=16)
    with pytest.raises(RelocationError):
        await store.relocate("torrents/tt1/720p/tt1.torrent", "https://yts.test/t/1")
    await store.close()

    assert s3.puts == 0


@pytest.mark.asyncio
async def test_storage_errors_raise_relocation_error() -> None:
    s3 = FakeS3(head_error_code="403")

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        return httpx.Response(200, content=b"data")

    store = _store(handler, s3)
    with pytest.raises(RelocationError) as excinfo:
        await store.relocate("images/tt1/poster/poster.jpg", "https://img.test/poster.jpg")
    await store.close()

    assert isinstance(excinfo.value.__cause__, ClientError)


@pytest.mark.asyncio
async def test_transport_failures_raise_relocation_error() -> None:
    s3 = FakeS3()

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    store = _store(handler, s3)
    with pytest.raises(RelocationError):
        await store.relocate("images/tt1/poster/poster.jpg", "https://img.test/poster.jpg")
    await store.close()


def test_unconfigured_store_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        AssetStore(_config(bucket=None))
