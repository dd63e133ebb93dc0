"""
Backing store selection.
The backend is chosen once from settings; callers only see ChunkStore.
"""

import logging
from typing import Optional

import httpx

from upload_proxy.core.config import StorageBackendType, settings
from upload_proxy.storage.base import ChunkStore
from upload_proxy.storage.local import LocalChunkStore
from upload_proxy.storage.remote import RemoteChunkStore
from upload_proxy.storage.s3 import S3ChunkStore

logger = logging.getLogger(__name__)


def create_chunk_store(
    backend: StorageBackendType,
    upload_host: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    chunk_size: Optional[int] = None
) -> ChunkStore:
    """
    Build a chunk store for the configured backend.

    Args:
        backend: Backend type
        upload_host: Upstream host, required for the remote backend
        http_client: Shared HTTP client, required for the remote backend
        chunk_size: Chunk size used by remote probes (defaults to settings)

    Returns:
        ChunkStore implementation

    Raises:
        ValueError: If a remote store is requested without host or client
    """
    if backend == StorageBackendType.REMOTE:
        if not upload_host or http_client is None:
            raise ValueError("Remote backend requires an upload host and an HTTP client")
        return RemoteChunkStore(
            client=http_client,
            upload_host=upload_host,
            chunk_size=chunk_size or settings.CHUNK_SIZE
        )

    if backend == StorageBackendType.LOCAL:
        return LocalChunkStore(settings.LOCAL_STORAGE_PATH)

    if backend == StorageBackendType.S3:
        return S3ChunkStore(bucket=settings.S3_BUCKET, max_workers=settings.S3_MAX_WORKERS)

    raise ValueError(f"Unknown storage backend: {backend}")
