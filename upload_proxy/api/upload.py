"""
Resumable upload endpoints.

POST  /upload         Start: ingest the whole body from chunk 0
HEAD  /upload/resume  Probe: report the confirmed offset
PATCH /upload/resume  Resume: ingest the remaining body from the client's offset
"""

import logging
import time
from urllib.parse import urlencode

from fastapi import APIRouter, Request, Response, status

from shared_schemas.common import SuccessResponse
from shared_schemas.upload_service import UploadSessionResponse
from upload_proxy.core.config import settings
from upload_proxy.core.dependencies import Identity, Store, UploadIdentity
from upload_proxy.core.exceptions import ValidationError
from upload_proxy.core.ingest import IngestResult, ingest_chunks
from upload_proxy.core.resume import compute_offset, offset_to_chunk_index
from upload_proxy.utils.headers import (
    UPLOAD_COMPLETE_HEADER,
    UPLOAD_INTEROP_VERSION_HEADER,
    UPLOAD_OFFSET_HEADER,
    format_sf_boolean,
    parse_content_length,
    parse_upload_offset,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/upload",
    tags=["upload"]
)


def build_resume_url(identity: UploadIdentity) -> str:
    """Resume endpoint URL for an upload, used as the session handle."""
    query = urlencode({
        "containerUUID": identity.container_id,
        "uploadFileUUID": identity.file_id
    })
    return f"{settings.PUBLIC_SERVICE_URL.rstrip('/')}/upload/resume?{query}"


def build_session_response(
    identity: UploadIdentity,
    result: IngestResult,
    message: str
) -> SuccessResponse[UploadSessionResponse]:
    return SuccessResponse(
        success=True,
        message=message,
        data=UploadSessionResponse(
            container_id=identity.container_id,
            file_id=identity.file_id,
            location=build_resume_url(identity),
            start_chunk_index=result.start_chunk_index,
            chunks_written=result.chunks_written,
            bytes_received=result.bytes_received,
            final_chunk_written=result.final_chunk_written
        )
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[UploadSessionResponse]
)
async def start_upload(
    request: Request,
    response: Response,
    identity: Identity,
    store: Store
):
    """
    Start an upload: stream the entire body into chunks from index 0.

    Requires containerUUID and uploadFileUUID query parameters, a positive
    Content-Length and, for the remote backend, the x-upload-host header.

    Examples:
        curl -X POST "http://server/upload?containerUUID=c1&uploadFileUUID=f1" \\
          -H "x-upload-host: storage.example.com" \\
          --data-binary "@video.mov"

    Returns:
        201 with Upload-Complete: ?1 and a Location pointing at the resume endpoint
    """
    content_length = parse_content_length(request.headers.get("content-length"))
    if content_length is None or content_length <= 0:
        raise ValidationError("Missing or invalid Content-Length", error_code="INVALID_CONTENT_LENGTH")

    start_time = time.time()
    location = build_resume_url(identity)

    logger.info(
        f"[START] {identity.container_id}/{identity.file_id}: "
        f"{content_length} bytes via {store.name} store"
    )

    result = await ingest_chunks(
        start_chunk_index=0,
        stream=request.stream(),
        store=store,
        container_id=identity.container_id,
        file_id=identity.file_id,
        chunk_size=settings.CHUNK_SIZE,
        final_marker=settings.FINAL_MARKER_MODE
    )

    if result.bytes_received != content_length:
        logger.warning(
            f"[START] {identity.container_id}/{identity.file_id}: "
            f"received {result.bytes_received} bytes, Content-Length was {content_length}"
        )

    duration = time.time() - start_time
    logger.info(
        f"[START] Completed: {identity.container_id}/{identity.file_id} "
        f"({result.chunks_written} chunks, {result.bytes_received / 1024 / 1024:.2f}MB in {duration:.2f}s)"
    )

    response.headers["Location"] = location
    response.headers[UPLOAD_INTEROP_VERSION_HEADER] = settings.UPLOAD_DRAFT_INTEROP_VERSION
    response.headers[UPLOAD_COMPLETE_HEADER] = format_sf_boolean(True)

    return build_session_response(identity, result, "Upload complete")


@router.head("/resume")
async def probe_upload(identity: Identity, store: Store):
    """
    Report how far an upload has progressed.

    Returns:
        200 with Upload-Offset (chunk-aligned) and Upload-Complete: ?0
    """
    offset = await compute_offset(
        store,
        identity.container_id,
        identity.file_id,
        settings.CHUNK_SIZE
    )

    return Response(
        status_code=status.HTTP_200_OK,
        headers={
            UPLOAD_OFFSET_HEADER: str(offset),
            UPLOAD_COMPLETE_HEADER: format_sf_boolean(False),
            "Cache-Control": "no-store"
        }
    )


@router.patch("/resume", response_model=SuccessResponse[UploadSessionResponse])
async def resume_upload(
    request: Request,
    response: Response,
    identity: Identity,
    store: Store
):
    """
    Resume an upload from a chunk-aligned Upload-Offset.

    The body must contain the file's bytes starting at that offset.

    Returns:
        200 with Upload-Complete: ?1, 400 if Upload-Offset is missing or
        not a non-negative integer, 409 if it is not chunk-aligned
    """
    offset = parse_upload_offset(request.headers.get(UPLOAD_OFFSET_HEADER))
    if offset is None:
        raise ValidationError("invalid or missing Upload-Offset header", error_code="INVALID_UPLOAD_OFFSET")

    chunk_index = offset_to_chunk_index(offset, settings.CHUNK_SIZE)
    logger.info(f"[RESUME] {identity.container_id}/{identity.file_id}: resuming upload at chunk {chunk_index}")

    result = await ingest_chunks(
        start_chunk_index=chunk_index,
        stream=request.stream(),
        store=store,
        container_id=identity.container_id,
        file_id=identity.file_id,
        chunk_size=settings.CHUNK_SIZE,
        final_marker=settings.FINAL_MARKER_MODE
    )

    logger.info(
        f"[RESUME] Completed: {identity.container_id}/{identity.file_id} "
        f"(chunks {chunk_index}..{result.next_chunk_index - 1}, {result.bytes_received} bytes)"
    )

    response.headers[UPLOAD_COMPLETE_HEADER] = format_sf_boolean(True)

    return build_session_response(identity, result, "Upload resumed and complete")
