"""
Backing store interface.
Every chunk destination implements this capability, so the ingestion engine
and the resume negotiator never branch on the concrete backend.
"""

from abc import ABC, abstractmethod


class ChunkStore(ABC):
    """
    Durable keyed storage for chunks addressed by (container_id, file_id, chunk_index).

    Implementations must:
    - return True/False from exists() only when the answer is known,
      and raise ChunkProbeError when it is not
    - raise ChunkWriteError from write() on any rejection or transport failure
    """

    name: str = "base"

    @abstractmethod
    async def exists(self, container_id: str, file_id: str, chunk_index: int) -> bool:
        """
        Check whether a chunk has been persisted.

        Args:
            container_id: Upload container identifier
            file_id: File identifier within the container
            chunk_index: Zero-based chunk index

        Returns:
            True if the chunk exists, False if it is absent

        Raises:
            ChunkProbeError: If existence could not be determined
        """

    @abstractmethod
    async def write(
        self,
        container_id: str,
        file_id: str,
        chunk_index: int,
        is_final: bool,
        data: bytes
    ) -> None:
        """
        Persist one chunk.

        Args:
            container_id: Upload container identifier
            file_id: File identifier within the container
            chunk_index: Zero-based chunk index
            is_final: True for the last chunk of the upload
            data: Chunk bytes

        Raises:
            ChunkWriteError: If the chunk could not be persisted
        """

    async def close(self) -> None:
        """Release per-store resources. Shared clients are closed by the app."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
