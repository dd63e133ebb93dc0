"""
Upload proxy API schemas.
Type-safe contracts for the resumable upload endpoints.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


# ============================================================================
# Upload Endpoints
# ============================================================================

class UploadSessionResponse(BaseModel):
    """Response from a Start or Resume request."""
    container_id: str
    file_id: str
    state: Literal["complete"] = "complete"  # Start and Resume only answer once the body is ingested
    location: str = Field(description="Resume endpoint for this upload")
    start_chunk_index: int = Field(ge=0)
    chunks_written: int = Field(ge=0)
    bytes_received: int = Field(ge=0)
    final_chunk_written: bool = Field(
        description="False when the body ended exactly on a chunk boundary and no final chunk was sent"
    )


# ============================================================================
# Health Check
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response."""
    status: str
    backend: str = Field(description="Configured storage backend: remote, local or s3")
    chunk_size: int
    detail: Optional[str] = None
