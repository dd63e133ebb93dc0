"""
Remote relay chunk store.
Forwards each chunk to an upstream storage service over HTTP.
"""

import logging

import httpx

from upload_proxy.core.config import settings
from upload_proxy.core.exceptions import ChunkProbeError, ChunkWriteError
from upload_proxy.storage.base import ChunkStore

logger = logging.getLogger(__name__)


class RemoteChunkStore(ChunkStore):
    """
    Chunk store backed by an upstream HTTP API.

    Wire contract:
        POST {scheme}://{host}/api/uploadChunk/{container}/{file}/{index}/{0|1}
            octet-stream body, success is exactly 201
        GET  {scheme}://{host}/api/mobile/containers/{container}/files/{file}/chunks/{index}/exists?chunk_size={n}
            body literal "true" means the chunk exists
    """

    name = "remote"

    def __init__(
        self,
        client: httpx.AsyncClient,
        upload_host: str,
        chunk_size: int,
        scheme: str | None = None,
        user_agent: str | None = None
    ):
        """
        Initialize relay for one upstream host.

        Args:
            client: Shared HTTP client
            upload_host: Upstream host (from the x-upload-host header)
            chunk_size: Chunk size sent with existence probes
            scheme: URL scheme, defaults to settings.UPSTREAM_SCHEME
            user_agent: User-Agent header, defaults to settings.UPSTREAM_USER_AGENT
        """
        self.client = client
        self.upload_host = upload_host
        self.chunk_size = chunk_size
        self.scheme = scheme or settings.UPSTREAM_SCHEME
        self.user_agent = user_agent or settings.UPSTREAM_USER_AGENT

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.upload_host}"

    def chunk_upload_url(self, container_id: str, file_id: str, chunk_index: int, is_final: bool) -> str:
        """Build the upstream URL a chunk is POSTed to."""
        return (
            f"{self.base_url}/api/uploadChunk/"
            f"{container_id}/{file_id}/{chunk_index}/{1 if is_final else 0}"
        )

    def chunk_exists_url(self, container_id: str, file_id: str, chunk_index: int) -> str:
        """Build the upstream URL used to probe a chunk."""
        return (
            f"{self.base_url}/api/mobile/containers/{container_id}"
            f"/files/{file_id}/chunks/{chunk_index}/exists"
        )

    async def exists(self, container_id: str, file_id: str, chunk_index: int) -> bool:
        """
        Probe the upstream for a chunk.

        200 with body "true" means present; 200 with any other body or 404
        means absent. Every other status and any transport error is a probe
        failure, never a silent absence.
        """
        url = self.chunk_exists_url(container_id, file_id, chunk_index)

        try:
            response = await self.client.get(
                url,
                params={"chunk_size": self.chunk_size},
                headers={"User-Agent": self.user_agent}
            )
        except httpx.HTTPError as e:
            logger.error(f"[REMOTE STORE] Probe transport error: {url} :: {e}")
            raise ChunkProbeError(f"Chunk probe failed: {e}", chunk_index) from e

        if response.status_code == 404:
            return False

        if response.status_code != 200:
            logger.error(f"[REMOTE STORE] Probe returned {response.status_code}: {url}")
            raise ChunkProbeError(
                f"Chunk probe returned status {response.status_code}",
                chunk_index
            )

        return response.text == "true"

    async def write(
        self,
        container_id: str,
        file_id: str,
        chunk_index: int,
        is_final: bool,
        data: bytes
    ) -> None:
        """POST one chunk upstream; anything but 201 is a failure."""
        url = self.chunk_upload_url(container_id, file_id, chunk_index, is_final)

        try:
            response = await self.client.post(
                url,
                content=data,
                headers={
                    "Content-Type": "application/octet-stream",
                    "User-Agent": self.user_agent
                }
            )
        except httpx.HTTPError as e:
            logger.error(f"[REMOTE STORE] Upload transport error: {url} :: {e}")
            raise ChunkWriteError(f"Chunk upload failed: {e}", chunk_index) from e

        if response.status_code != 201:
            logger.error(f"[REMOTE STORE] Upload rejected with {response.status_code}: {url}")
            raise ChunkWriteError(
                f"upload failed, got status: {response.status_code}",
                chunk_index
            )

        logger.debug(f"[REMOTE STORE] Stored chunk {chunk_index} ({len(data)} bytes) at {self.upload_host}")
