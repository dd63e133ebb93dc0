"""
Local directory chunk store.
Layout: {root}/{container_id}/{file_id}/{chunk_index}, one file per chunk.
"""

import asyncio
import logging
from pathlib import Path

from upload_proxy.core.exceptions import ChunkProbeError, ChunkWriteError
from upload_proxy.storage.base import ChunkStore
from upload_proxy.utils.headers import is_safe_identifier

logger = logging.getLogger(__name__)


class LocalChunkStore(ChunkStore):
    """Chunk store backed by the local filesystem."""

    name = "local"

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Ensure storage root exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_chunk_path(self, container_id: str, file_id: str, chunk_index: int) -> Path:
        """
        Get file path for a chunk.

        Args:
            container_id: Upload container identifier
            file_id: File identifier within the container
            chunk_index: Zero-based chunk index

        Returns:
            Path object for the chunk file

        Raises:
            ValueError: If an identifier would escape the storage root
        """
        if not is_safe_identifier(container_id) or not is_safe_identifier(file_id):
            raise ValueError(f"Unsafe identifiers: {container_id!r}/{file_id!r}")
        if chunk_index < 0:
            raise ValueError(f"Negative chunk index: {chunk_index}")
        return self.root / container_id / file_id / str(chunk_index)

    def _write_chunk(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def exists(self, container_id: str, file_id: str, chunk_index: int) -> bool:
        try:
            path = self.get_chunk_path(container_id, file_id, chunk_index)
            return await asyncio.get_event_loop().run_in_executor(None, path.is_file)
        except (OSError, ValueError) as e:
            logger.error(f"[LOCAL STORE] Probe failed for chunk {chunk_index}: {e}")
            raise ChunkProbeError(f"Chunk probe failed: {e}", chunk_index) from e

    async def write(
        self,
        container_id: str,
        file_id: str,
        chunk_index: int,
        is_final: bool,
        data: bytes
    ) -> None:
        """Write chunk bytes verbatim; the final flag is not persisted locally."""
        try:
            path = self.get_chunk_path(container_id, file_id, chunk_index)
            # Blocking file I/O runs off the event loop
            await asyncio.get_event_loop().run_in_executor(None, self._write_chunk, path, data)
        except (OSError, ValueError) as e:
            logger.error(f"[LOCAL STORE] Failed to write chunk {chunk_index}: {e}")
            raise ChunkWriteError(f"Chunk write failed: {e}", chunk_index) from e

        logger.debug(f"[LOCAL STORE] Wrote {path} ({len(data)} bytes, final={is_final})")
