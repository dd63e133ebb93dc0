"""Tests for the remote relay chunk store."""

import httpx
import pytest

from upload_proxy.core.exceptions import ChunkProbeError, ChunkWriteError
from upload_proxy.storage.remote import RemoteChunkStore

HOST = "storage.example.com"


def make_store(handler, chunk_size=52428800):
    """Build a store whose HTTP traffic goes to handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteChunkStore(
        client=client,
        upload_host=HOST,
        chunk_size=chunk_size,
        scheme="https",
        user_agent="ST-Resumable-Proxy/1.0"
    )


class TestRemoteWrite:
    """POST /api/uploadChunk contract."""

    @pytest.mark.asyncio
    async def test_write_posts_chunk_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        store = make_store(handler)
        await store.write("c1", "f1", 3, True, b"payload")

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == f"https://{HOST}/api/uploadChunk/c1/f1/3/1"
        assert request.content == b"payload"
        assert request.headers["content-type"] == "application/octet-stream"
        assert request.headers["user-agent"] == "ST-Resumable-Proxy/1.0"

    @pytest.mark.asyncio
    async def test_non_final_flag_is_zero(self):
        urls = []

        def handler(request):
            urls.append(request.url.path)
            return httpx.Response(201)

        await make_store(handler).write("c1", "f1", 0, False, b"x")

        assert urls == ["/api/uploadChunk/c1/f1/0/0"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [200, 204, 400, 500, 503])
    async def test_anything_but_201_is_failure(self, status_code):
        store = make_store(lambda request: httpx.Response(status_code))

        with pytest.raises(ChunkWriteError) as exc_info:
            await store.write("c1", "f1", 7, False, b"x")

        assert exc_info.value.chunk_index == 7

    @pytest.mark.asyncio
    async def test_transport_error_is_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ChunkWriteError):
            await make_store(handler).write("c1", "f1", 0, False, b"x")


class TestRemoteExists:
    """GET .../chunks/{i}/exists contract."""

    @pytest.mark.asyncio
    async def test_probe_url_carries_chunk_size(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="true")

        store = make_store(handler, chunk_size=1024)
        assert await store.exists("c1", "f1", 2) is True

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/api/mobile/containers/c1/files/f1/chunks/2/exists"
        assert request.url.params["chunk_size"] == "1024"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["false", "TRUE", "", "true\n"])
    async def test_only_literal_true_means_present(self, body):
        store = make_store(lambda request: httpx.Response(200, text=body))

        assert await store.exists("c1", "f1", 0) is False

    @pytest.mark.asyncio
    async def test_not_found_means_absent(self):
        store = make_store(lambda request: httpx.Response(404))

        assert await store.exists("c1", "f1", 0) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 500, 502])
    async def test_error_status_is_probe_failure(self, status_code):
        store = make_store(lambda request: httpx.Response(status_code, text="true"))

        with pytest.raises(ChunkProbeError):
            await store.exists("c1", "f1", 0)

    @pytest.mark.asyncio
    async def test_transport_error_is_probe_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ChunkProbeError) as exc_info:
            await make_store(handler).exists("c1", "f1", 4)

        assert exc_info.value.chunk_index == 4
