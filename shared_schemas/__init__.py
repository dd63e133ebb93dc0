"""
Shared API schemas for the resumable upload proxy.
Provides type-safe contracts for HTTP APIs.
"""

__version__ = "0.1.0"

# Export commonly used schemas
from shared_schemas.common import *  # noqa: F403, F401
from shared_schemas.upload_service import *  # noqa: F403, F401
