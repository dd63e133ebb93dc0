"""
Streaming utilities.
Re-chunks an inbound byte stream into fixed-size segments.
"""

from typing import List, Optional


class ChunkBuffer:
    """
    Accumulate arbitrary-sized reads into exactly chunk_size segments.

    Reads are appended to an internal bytearray; every time the buffer holds
    at least chunk_size bytes the leading chunk_size bytes are cut off and
    returned, in arrival order. finish() hands back whatever is left.

    One buffer belongs to one ingestion call and is never shared.
    """

    def __init__(self, chunk_size: int):
        """
        Initialize an empty buffer.

        Args:
            chunk_size: Size in bytes of every emitted chunk except the last
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be greater than zero")

        self.chunk_size = chunk_size
        self.buffer = bytearray()
        self.finished = False
        self.total_bytes = 0

    def feed(self, data: bytes) -> List[bytes]:
        """
        Append a read to the buffer and cut off every complete chunk.

        Args:
            data: Bytes from one read of the input stream (may be empty)

        Returns:
            Complete chunks, each exactly chunk_size bytes, oldest first
        """
        if self.finished:
            raise RuntimeError("ChunkBuffer.feed() called after finish()")

        self.buffer.extend(data)
        self.total_bytes += len(data)

        chunks = []
        consumed = 0
        with memoryview(self.buffer) as view:
            while len(view) - consumed >= self.chunk_size:
                with view[consumed:consumed + self.chunk_size] as segment:
                    chunks.append(bytes(segment))
                consumed += self.chunk_size

        # Views are released, so the bytearray may be resized again
        if consumed:
            del self.buffer[:consumed]
        return chunks

    def finish(self) -> Optional[bytes]:
        """
        Signal end of stream.

        Returns:
            The remaining 1..chunk_size bytes, or None if the buffer is empty
        """
        self.finished = True

        if not self.buffer:
            return None

        data = bytes(self.buffer)
        self.buffer.clear()
        return data

    @property
    def pending_bytes(self) -> int:
        """Bytes held that have not yet formed a complete chunk."""
        return len(self.buffer)
