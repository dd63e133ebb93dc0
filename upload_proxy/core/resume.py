"""
Resume negotiation.
Derives the confirmed upload offset from the chunks a store already holds.
"""

import logging

from upload_proxy.core.exceptions import MisalignedOffsetError
from upload_proxy.storage.base import ChunkStore

logger = logging.getLogger(__name__)


async def count_contiguous_chunks(store: ChunkStore, container_id: str, file_id: str) -> int:
    """
    Count chunks 0, 1, 2, ... until the first missing index.

    Gaps are not skipped: a hole ends the count even if later chunks exist.

    Raises:
        ChunkProbeError: If the store cannot answer a probe
    """
    chunk_index = 0
    while await store.exists(container_id, file_id, chunk_index):
        chunk_index += 1
    return chunk_index


async def compute_offset(store: ChunkStore, container_id: str, file_id: str, chunk_size: int) -> int:
    """
    Compute the byte offset a client may resume from.

    Args:
        store: Backing store to probe
        container_id: Upload container identifier
        file_id: File identifier within the container
        chunk_size: Bytes per chunk

    Returns:
        contiguous chunk count * chunk_size, always chunk-aligned

    Raises:
        ChunkProbeError: If the store cannot answer a probe
    """
    chunk_count = await count_contiguous_chunks(store, container_id, file_id)
    offset = chunk_count * chunk_size
    logger.info(f"[PROBE] {container_id}/{file_id}: {chunk_count} contiguous chunks, offset {offset}")
    return offset


def offset_to_chunk_index(offset: int, chunk_size: int) -> int:
    """
    Convert a client offset into the chunk index to resume at.

    Raises:
        MisalignedOffsetError: If the offset is not a multiple of chunk_size
    """
    if offset < 0:
        raise ValueError("offset must be non-negative")
    if offset % chunk_size != 0:
        raise MisalignedOffsetError(offset, chunk_size)
    return offset // chunk_size
