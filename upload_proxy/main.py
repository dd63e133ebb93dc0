"""
Resumable Upload Proxy - Main Application
FastAPI app that chunks inbound uploads into a pluggable backing store.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared_schemas.common import ErrorResponse
from shared_schemas.upload_service import HealthCheckResponse
from upload_proxy.core.config import StorageBackendType, settings
from upload_proxy.core.dependencies import close_http_client, close_static_store, get_static_store
from upload_proxy.core.exceptions import (
    ChunkProbeError,
    IngestError,
    MisalignedOffsetError,
    ValidationError,
)
from upload_proxy.api import upload

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Runs on startup and shutdown.
    """
    # Startup
    logger.info("Starting Resumable Upload Proxy...")
    logger.info(f"Backend: {settings.STORAGE_BACKEND.value}, chunk size: {settings.CHUNK_SIZE} bytes")

    # Prepare request-independent stores up front
    try:
        if settings.STORAGE_BACKEND == StorageBackendType.LOCAL:
            get_static_store().ensure_root()
            logger.info(f"Local storage root ready: {settings.LOCAL_STORAGE_PATH}")
        elif settings.STORAGE_BACKEND == StorageBackendType.S3:
            get_static_store().ensure_bucket_exists()
            logger.info(f"S3 bucket ready: {settings.S3_BUCKET}")
    except Exception as e:
        logger.error(f"Failed to prepare {settings.STORAGE_BACKEND.value} store: {e}")
        # Continue anyway - directories and buckets are created on first write

    logger.info("Resumable Upload Proxy started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Resumable Upload Proxy...")
    await close_http_client()
    await close_static_store()


# Create FastAPI app
app = FastAPI(
    title="Resumable Upload Proxy",
    description="Chunks streamed uploads into a backing store and lets interrupted uploads resume",
    version="1.0.0",
    lifespan=lifespan
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "POST", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Location", "Upload-Offset", "Upload-Complete", "Upload-Draft-Interop-Version"],
)


# Include API routers
app.include_router(upload.router)


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with service information."""
    return {
        "service": "Resumable Upload Proxy",
        "version": "1.0.0",
        "status": "running",
        "backend": settings.STORAGE_BACKEND.value,
        "chunk_size": settings.CHUNK_SIZE,
        "endpoints": {
            "start": "POST /upload",
            "probe": "HEAD /upload/resume",
            "resume": "PATCH /upload/resume",
            "health": "/health"
        },
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc"
        }
    }


@app.get("/health", tags=["health"], response_model=HealthCheckResponse)
async def health_check():
    """Health check endpoint."""
    return HealthCheckResponse(
        status="healthy",
        backend=settings.STORAGE_BACKEND.value,
        chunk_size=settings.CHUNK_SIZE
    )


def error_response(status_code: int, detail: str, error_code: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=detail, error_code=error_code).model_dump()
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Client errors: nothing has been written."""
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.detail}")
    return error_response(400, exc.detail, exc.error_code)


@app.exception_handler(MisalignedOffsetError)
async def misaligned_offset_handler(request: Request, exc: MisalignedOffsetError):
    """Offsets must sit on a chunk boundary."""
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.detail}")
    return error_response(409, exc.detail, exc.error_code)


@app.exception_handler(IngestError)
async def ingest_exception_handler(request: Request, exc: IngestError):
    """Read or write failure mid-upload; written chunks stay in place."""
    logger.error(f"Ingestion failed on {request.url.path} after {exc.chunks_written} chunks: {exc}")
    return error_response(500, str(exc), "INGEST_FAILED")


@app.exception_handler(ChunkProbeError)
async def probe_exception_handler(request: Request, exc: ChunkProbeError):
    """The backing store could not report progress."""
    logger.error(f"Probe failed on {request.url.path} at chunk {exc.chunk_index}: {exc}")
    return error_response(502, "Unable to determine upload offset", "PROBE_FAILED")


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "detail": "Internal server error"
        }
    )


def run():
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "upload_proxy.main:app",
        host="0.0.0.0",
        port=8080,
        log_level=settings.LOG_LEVEL.lower(),
        timeout_keep_alive=7200,  # 2 hours for very large uploads
        limit_concurrency=100
    )


if __name__ == "__main__":
    run()
