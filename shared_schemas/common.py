"""
Common schemas shared by every endpoint of the upload proxy.
"""

from typing import Generic, TypeVar
from pydantic import BaseModel


T = TypeVar('T')


class SuccessResponse(BaseModel, Generic[T]):
    """
    Generic success response wrapper.

    Example:
        SuccessResponse[UploadSessionResponse](
            success=True,
            message="Upload complete",
            data=UploadSessionResponse(...)
        )
    """
    success: bool
    message: str | None = None
    data: T


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    detail: str
    error_code: str | None = None
