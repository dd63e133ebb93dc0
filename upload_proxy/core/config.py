"""
Configuration management for the Resumable Upload Proxy.
Loads environment variables and defines the chunking and backend settings.
"""

from enum import Enum
from typing import List, Optional, Union

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class StorageBackendType(str, Enum):
    """Enum for backing store realizations."""
    REMOTE = "remote"
    LOCAL = "local"
    S3 = "s3"


class FinalMarkerMode(str, Enum):
    """How an upload that ends exactly on a chunk boundary is finalized."""
    NONE = "none"                # Last full chunk stays non-final, nothing extra is written
    EMPTY_CHUNK = "empty_chunk"  # A zero-byte chunk marked final is appended


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Chunking
    CHUNK_SIZE: int = 50 * 1024 * 1024  # 50MiB, identical for every upload in a deployment
    FINAL_MARKER_MODE: FinalMarkerMode = FinalMarkerMode.NONE

    # Backing store selection
    STORAGE_BACKEND: StorageBackendType = StorageBackendType.REMOTE

    # Public Configuration (used to build the resume Location)
    PUBLIC_SERVICE_URL: str = "http://localhost:8080"
    UPLOAD_DRAFT_INTEROP_VERSION: str = "6"

    # Remote relay
    UPSTREAM_SCHEME: str = "https"
    UPSTREAM_TIMEOUT: Optional[float] = 300.0
    UPSTREAM_USER_AGENT: str = "ST-Resumable-Proxy/1.0"
    ALLOWED_UPLOAD_HOSTS: Union[str, List[str]] = []  # Empty list accepts any host

    # Local directory tree
    LOCAL_STORAGE_PATH: str = "containers"

    # MinIO / S3
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = ""
    MINIO_SECRET_KEY: str = ""
    MINIO_SECURE: bool = False    # Set to True for HTTPS
    S3_BUCKET: str = "uploads"
    S3_MAX_WORKERS: int = 8       # Threads shared by all uploads for blocking boto3 calls

    # Application
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: Union[str, List[str]] = ["*"]

    @field_validator("CHUNK_SIZE")
    @classmethod
    def validate_chunk_size(cls, value: int) -> int:
        """Chunk size must be strictly positive."""
        if value <= 0:
            raise ValueError("CHUNK_SIZE must be greater than zero")
        return value

    @model_validator(mode="before")
    @classmethod
    def parse_comma_separated(cls, values):
        """Parse list settings given as comma-separated strings."""
        for name in ("ALLOWED_UPLOAD_HOSTS", "CORS_ORIGINS"):
            raw = values.get(name)
            if isinstance(raw, str):
                values[name] = [item.strip() for item in raw.split(",") if item.strip()]
        return values

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()


def is_upload_host_allowed(upload_host: str) -> bool:
    """
    Check an upstream host against ALLOWED_UPLOAD_HOSTS.

    Args:
        upload_host: Value of the x-upload-host header

    Returns:
        True if the allowlist is empty or contains the host
    """
    if not settings.ALLOWED_UPLOAD_HOSTS:
        return True
    return upload_host in settings.ALLOWED_UPLOAD_HOSTS
