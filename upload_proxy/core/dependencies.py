"""
Shared dependencies for FastAPI endpoints.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

import httpx
from fastapi import Depends, Header, Query

from upload_proxy.core.config import StorageBackendType, is_upload_host_allowed, settings
from upload_proxy.core.exceptions import ValidationError
from upload_proxy.storage.base import ChunkStore
from upload_proxy.storage.factory import create_chunk_store
from upload_proxy.utils.headers import is_safe_identifier

logger = logging.getLogger(__name__)


# HTTP Client singleton
_http_client: httpx.AsyncClient | None = None

# Stores that do not depend on the request (local, s3)
_static_store: ChunkStore | None = None


async def get_http_client() -> httpx.AsyncClient:
    """
    Get or create the global HTTP client.
    Used for relaying chunks to upstream storage services.
    """
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=settings.UPSTREAM_TIMEOUT,
            follow_redirects=False
        )
    return _http_client


async def close_http_client():
    """Close the global HTTP client."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_static_store() -> ChunkStore:
    """Get or create the request-independent store (local or s3 backends)."""
    global _static_store
    if _static_store is None:
        _static_store = create_chunk_store(settings.STORAGE_BACKEND)
        logger.info(f"Chunk store ready: {_static_store!r}")
    return _static_store


async def close_static_store():
    """Release the request-independent store."""
    global _static_store
    if _static_store is not None:
        await _static_store.close()
        _static_store = None


@dataclass(frozen=True)
class UploadIdentity:
    """(container, file) pair naming one upload."""
    container_id: str
    file_id: str


async def get_upload_identity(
    container_uuid: Optional[str] = Query(None, alias="containerUUID"),
    upload_file_uuid: Optional[str] = Query(None, alias="uploadFileUUID")
) -> UploadIdentity:
    """
    Extract and validate the upload identity from query parameters.

    Raises:
        ValidationError: If either identifier is missing or unsafe
    """
    if not container_uuid or not upload_file_uuid:
        raise ValidationError("Missing required query parameters", error_code="MISSING_IDENTITY")

    if not is_safe_identifier(container_uuid) or not is_safe_identifier(upload_file_uuid):
        raise ValidationError("Invalid containerUUID or uploadFileUUID", error_code="INVALID_IDENTITY")

    return UploadIdentity(container_id=container_uuid, file_id=upload_file_uuid)


async def get_chunk_store(
    x_upload_host: Optional[str] = Header(None),
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> ChunkStore:
    """
    Resolve the backing store for this request.

    The remote backend relays to the host named by x-upload-host, which is
    then required; other backends ignore the header.

    Raises:
        ValidationError: If the remote backend's upload host is missing or not allowed
    """
    if settings.STORAGE_BACKEND != StorageBackendType.REMOTE:
        return get_static_store()

    if not x_upload_host:
        raise ValidationError("Missing x-upload-host header", error_code="MISSING_UPLOAD_HOST")

    if not is_upload_host_allowed(x_upload_host):
        logger.warning(f"Rejected upload host: {x_upload_host}")
        raise ValidationError(f"Upload host not allowed: {x_upload_host}", error_code="UPLOAD_HOST_NOT_ALLOWED")

    return create_chunk_store(
        StorageBackendType.REMOTE,
        upload_host=x_upload_host,
        http_client=http_client,
        chunk_size=settings.CHUNK_SIZE
    )


# Dependency annotations
Identity = Annotated[UploadIdentity, Depends(get_upload_identity)]
Store = Annotated[ChunkStore, Depends(get_chunk_store)]
