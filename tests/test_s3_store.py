"""Tests for the MinIO/S3 chunk store against a stubbed boto3 client."""

import asyncio
import threading
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from upload_proxy.core.exceptions import ChunkProbeError, ChunkWriteError
from upload_proxy.storage.s3 import S3ChunkStore


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def store(s3_client):
    store = S3ChunkStore(bucket="uploads", client=s3_client)
    yield store
    store.executor.shutdown(wait=True)


@pytest.mark.asyncio
async def test_write_puts_object_with_final_metadata(store, s3_client):
    await store.write("c1", "f1", 4, True, b"tail")

    s3_client.put_object.assert_called_once_with(
        Bucket="uploads",
        Key="c1/f1/4",
        Body=b"tail",
        ContentType="application/octet-stream",
        Metadata={"final": "1"}
    )


@pytest.mark.asyncio
async def test_write_failure_is_reported(store, s3_client):
    s3_client.put_object.side_effect = client_error("InternalError", "PutObject")

    with pytest.raises(ChunkWriteError) as exc_info:
        await store.write("c1", "f1", 0, False, b"x")

    assert exc_info.value.chunk_index == 0


@pytest.mark.asyncio
async def test_exists_uses_head_object(store, s3_client):
    assert await store.exists("c1", "f1", 1) is True

    s3_client.head_object.assert_called_once_with(Bucket="uploads", Key="c1/f1/1")


@pytest.mark.asyncio
async def test_missing_object_is_absent(store, s3_client):
    s3_client.head_object.side_effect = client_error("404", "HeadObject")

    assert await store.exists("c1", "f1", 0) is False


@pytest.mark.asyncio
async def test_access_denied_is_probe_failure(store, s3_client):
    s3_client.head_object.side_effect = client_error("403", "HeadObject")

    with pytest.raises(ChunkProbeError):
        await store.exists("c1", "f1", 0)


def test_ensure_bucket_creates_missing_bucket(store, s3_client):
    s3_client.head_bucket.side_effect = client_error("404", "HeadBucket")

    store.ensure_bucket_exists()

    s3_client.create_bucket.assert_called_once_with(Bucket="uploads")


def test_ensure_bucket_keeps_existing_bucket(store, s3_client):
    store.ensure_bucket_exists()

    s3_client.create_bucket.assert_not_called()


@pytest.mark.asyncio
async def test_concurrent_uploads_share_the_executor(s3_client):
    # Both calls must be in flight at once for the barrier to release
    barrier = threading.Barrier(2, timeout=2)
    s3_client.put_object.side_effect = lambda **kwargs: barrier.wait()
    s3_client.head_object.side_effect = lambda **kwargs: barrier.wait()
    store = S3ChunkStore(bucket="uploads", client=s3_client, max_workers=2)

    try:
        await asyncio.gather(
            store.write("c1", "upload-a", 0, False, b"x"),
            store.exists("c2", "upload-b", 0),
        )
    finally:
        store.executor.shutdown(wait=True)

    assert s3_client.put_object.call_count == 1
    assert s3_client.head_object.call_count == 1
