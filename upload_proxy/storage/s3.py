"""
MinIO/S3 chunk store.
Stores chunk i of an upload as object {container_id}/{file_id}/{i}.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from upload_proxy.core.config import settings
from upload_proxy.core.exceptions import ChunkProbeError, ChunkWriteError
from upload_proxy.storage.base import ChunkStore

logger = logging.getLogger(__name__)


def create_s3_client() -> Any:
    """Build a boto3 S3 client from the MinIO settings."""
    # Parse endpoint to extract protocol and host
    endpoint_url = settings.MINIO_ENDPOINT
    if not endpoint_url.startswith(('http://', 'https://')):
        protocol = 'https' if settings.MINIO_SECURE else 'http'
        endpoint_url = f"{protocol}://{endpoint_url}"

    client = boto3.client(
        's3',
        endpoint_url=endpoint_url,
        aws_access_key_id=settings.MINIO_ACCESS_KEY,
        aws_secret_access_key=settings.MINIO_SECRET_KEY,
        config=Config(signature_version='s3v4'),
        region_name='us-east-1'  # MinIO doesn't care about region
    )

    logger.info(f"S3 client initialized with endpoint: {endpoint_url}")
    return client


class S3ChunkStore(ChunkStore):
    """Chunk store backed by a MinIO/S3 bucket."""

    name = "s3"

    def __init__(self, bucket: str, client: Optional[Any] = None, max_workers: int = 8):
        """
        Initialize store.

        Args:
            bucket: Bucket holding every chunk
            client: boto3 S3 client, created from settings if omitted
            max_workers: Threads for blocking boto3 calls, shared by all uploads
        """
        self.bucket = bucket
        self.client = client if client is not None else create_s3_client()

        # Bounded pool shared by concurrent uploads; one upload awaits each call
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="s3-chunk")

    @staticmethod
    def get_chunk_key(container_id: str, file_id: str, chunk_index: int) -> str:
        """Object key for a chunk."""
        return f"{container_id}/{file_id}/{chunk_index}"

    async def _run(self, func, *args):
        return await asyncio.get_event_loop().run_in_executor(self.executor, func, *args)

    def ensure_bucket_exists(self) -> None:
        """
        Ensure bucket exists, create if it doesn't.

        Raises:
            ClientError: If bucket creation fails
        """
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"Bucket exists: {self.bucket}")
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code in ('404', 'NoSuchBucket'):
                self.client.create_bucket(Bucket=self.bucket)
                logger.info(f"Created bucket: {self.bucket}")
            else:
                logger.error(f"Error checking bucket {self.bucket}: {e}")
                raise

    def _head_chunk(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise

    def _put_chunk(self, key: str, is_final: bool, data: bytes) -> None:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType='application/octet-stream',
            Metadata={'final': '1' if is_final else '0'}
        )

    async def exists(self, container_id: str, file_id: str, chunk_index: int) -> bool:
        key = self.get_chunk_key(container_id, file_id, chunk_index)
        try:
            return await self._run(self._head_chunk, key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"[S3 STORE] Probe failed: {self.bucket}/{key} :: {e}")
            raise ChunkProbeError(f"Chunk probe failed: {e}", chunk_index) from e

    async def write(
        self,
        container_id: str,
        file_id: str,
        chunk_index: int,
        is_final: bool,
        data: bytes
    ) -> None:
        key = self.get_chunk_key(container_id, file_id, chunk_index)
        try:
            await self._run(self._put_chunk, key, is_final, data)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"[S3 STORE] Failed to upload {self.bucket}/{key}: {e}")
            raise ChunkWriteError(f"Chunk write failed: {e}", chunk_index) from e

        logger.debug(f"[S3 STORE] Uploaded {self.bucket}/{key} ({len(data)} bytes, final={is_final})")

    async def close(self) -> None:
        self.executor.shutdown(wait=False)
