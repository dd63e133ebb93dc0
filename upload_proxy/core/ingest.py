"""
Chunked ingestion engine.
Drives a ChunkBuffer over an inbound byte stream and writes each chunk to a store.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator

from upload_proxy.core.config import FinalMarkerMode
from upload_proxy.core.exceptions import ChunkStoreError, ReadFailure, WriteFailure
from upload_proxy.storage.base import ChunkStore
from upload_proxy.utils.streaming import ChunkBuffer

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of one successful ingestion call."""
    start_chunk_index: int
    next_chunk_index: int
    chunks_written: int
    bytes_received: int
    final_chunk_written: bool


async def ingest_chunks(
    start_chunk_index: int,
    stream: AsyncIterator[bytes],
    store: ChunkStore,
    container_id: str,
    file_id: str,
    chunk_size: int,
    final_marker: FinalMarkerMode = FinalMarkerMode.NONE
) -> IngestResult:
    """
    Split a byte stream into chunks and persist them in index order.

    Every complete chunk is written with is_final=False as soon as it is cut;
    at end of stream the remainder, if any, is written with is_final=True.
    Writes are awaited one at a time, so reading pauses until the store has
    accepted the previous chunk. The first failure stops the loop and chunks
    already written are left in place.

    When the stream ends exactly on a chunk boundary no remainder exists.
    With FinalMarkerMode.NONE nothing else is written and the upload carries
    no final chunk; with FinalMarkerMode.EMPTY_CHUNK a zero-byte chunk marked
    final is appended at the next index.

    Args:
        start_chunk_index: Index assigned to the first chunk cut from this stream
        stream: Async iterator of raw reads (any sizes)
        store: Backing store
        container_id: Upload container identifier
        file_id: File identifier within the container
        chunk_size: Bytes per chunk
        final_marker: Handling of a chunk-aligned stream end

    Returns:
        IngestResult describing what was written

    Raises:
        ReadFailure: If the stream raised while being read
        WriteFailure: If the store failed a chunk write
    """
    if start_chunk_index < 0:
        raise ValueError("start_chunk_index must be non-negative")

    buffer = ChunkBuffer(chunk_size)
    chunk_index = start_chunk_index
    chunks_written = 0

    async def write_chunk(index: int, is_final: bool, data: bytes) -> None:
        try:
            await store.write(container_id, file_id, index, is_final, data)
        except ChunkStoreError as e:
            logger.error(
                f"[INGEST] Chunk {index} failed for {container_id}/{file_id} "
                f"after {chunks_written} chunks :: {e}"
            )
            raise WriteFailure(index, e, chunks_written) from e

        logger.info(
            f"[INGEST] Wrote chunk {index} for {container_id}/{file_id} "
            f"({len(data)} bytes, final={is_final})"
        )

    iterator = stream.__aiter__()
    while True:
        try:
            data = await iterator.__anext__()
        except StopAsyncIteration:
            break
        except Exception as e:
            logger.error(f"[INGEST] Error reading body for {container_id}/{file_id}: {e!r}")
            raise ReadFailure(f"Error reading body: {e!r}", chunks_written) from e

        for chunk in buffer.feed(data):
            await write_chunk(chunk_index, False, chunk)
            chunk_index += 1
            chunks_written += 1

    final_chunk_written = False
    remainder = buffer.finish()

    if remainder is not None:
        await write_chunk(chunk_index, True, remainder)
        final_chunk_written = True
        chunk_index += 1
        chunks_written += 1
    elif final_marker == FinalMarkerMode.EMPTY_CHUNK and buffer.total_bytes > 0:
        await write_chunk(chunk_index, True, b"")
        final_chunk_written = True
        chunk_index += 1
        chunks_written += 1
    elif buffer.total_bytes > 0:
        logger.warning(
            f"[INGEST] {container_id}/{file_id} ended on a chunk boundary at index {chunk_index}; "
            f"no chunk was marked final"
        )

    return IngestResult(
        start_chunk_index=start_chunk_index,
        next_chunk_index=chunk_index,
        chunks_written=chunks_written,
        bytes_received=buffer.total_bytes,
        final_chunk_written=final_chunk_written
    )
