"""
Exception hierarchy for the Resumable Upload Proxy.
"""

from typing import Optional


class UploadProxyError(Exception):
    """Base exception for all upload proxy errors."""
    pass


class ValidationError(UploadProxyError):
    """
    Raised when request parameters are missing or malformed.
    Surfaced as a client error before any chunk is touched.
    """

    def __init__(self, detail: str, error_code: str = "INVALID_REQUEST"):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code


class MisalignedOffsetError(ValidationError):
    """Raised when a client offset does not fall on a chunk boundary."""

    def __init__(self, offset: int, chunk_size: int):
        super().__init__(
            f"Upload-Offset {offset} is not a multiple of the chunk size {chunk_size}",
            error_code="MISALIGNED_OFFSET"
        )
        self.offset = offset
        self.chunk_size = chunk_size


# ============================================================================
# Backing store failures
# ============================================================================

class ChunkStoreError(UploadProxyError):
    """Base exception for backing store failures."""

    def __init__(self, message: str, chunk_index: Optional[int] = None):
        super().__init__(message)
        self.chunk_index = chunk_index


class ChunkWriteError(ChunkStoreError):
    """Raised when a store rejects or fails a chunk write."""
    pass


class ChunkProbeError(ChunkStoreError):
    """
    Raised when a store cannot tell whether a chunk exists.
    Distinct from a plain absence, which is reported as False.
    """
    pass


# ============================================================================
# Ingestion failures
# ============================================================================

class IngestError(UploadProxyError):
    """Base exception for failures that abort an ingestion."""

    def __init__(self, message: str, chunks_written: int = 0):
        super().__init__(message)
        self.chunks_written = chunks_written


class ReadFailure(IngestError):
    """Raised when reading the inbound request body fails."""
    pass


class WriteFailure(IngestError):
    """Raised when the backing store fails to persist a chunk."""

    def __init__(self, chunk_index: int, cause: Exception, chunks_written: int = 0):
        super().__init__(f"Failed to write chunk {chunk_index}: {cause}", chunks_written)
        self.chunk_index = chunk_index
        self.cause = cause
