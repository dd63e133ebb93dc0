"""Shared pytest fixtures for all tests."""

from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from upload_proxy.core.config import FinalMarkerMode, StorageBackendType, settings
from upload_proxy.core.exceptions import ChunkProbeError, ChunkWriteError
from upload_proxy.main import app
from upload_proxy.storage.base import ChunkStore

TEST_CHUNK_SIZE = 10


class MemoryChunkStore(ChunkStore):
    """
    In-memory chunk store that records every call.

    Args:
        fail_write_at: Chunk index whose write raises ChunkWriteError
        fail_probe_at: Chunk index whose probe raises ChunkProbeError
    """

    name = "memory"

    def __init__(self, fail_write_at: Optional[int] = None, fail_probe_at: Optional[int] = None):
        self.chunks: Dict[Tuple[str, str, int], bytes] = {}
        self.final_flags: Dict[Tuple[str, str, int], bool] = {}
        self.writes: List[Tuple[int, bool, int]] = []
        self.probes: List[int] = []
        self.fail_write_at = fail_write_at
        self.fail_probe_at = fail_probe_at

    async def exists(self, container_id: str, file_id: str, chunk_index: int) -> bool:
        self.probes.append(chunk_index)
        if chunk_index == self.fail_probe_at:
            raise ChunkProbeError("probe unavailable", chunk_index)
        return (container_id, file_id, chunk_index) in self.chunks

    async def write(self, container_id, file_id, chunk_index, is_final, data) -> None:
        if chunk_index == self.fail_write_at:
            raise ChunkWriteError("upload failed, got status: 500", chunk_index)
        self.writes.append((chunk_index, is_final, len(data)))
        self.chunks[(container_id, file_id, chunk_index)] = bytes(data)
        self.final_flags[(container_id, file_id, chunk_index)] = is_final

    def assembled(self, container_id: str, file_id: str) -> bytes:
        """Concatenate stored chunks in index order."""
        indexes = sorted(i for c, f, i in self.chunks if (c, f) == (container_id, file_id))
        return b"".join(self.chunks[(container_id, file_id, i)] for i in indexes)


@pytest.fixture
def memory_store():
    """Fresh in-memory chunk store."""
    return MemoryChunkStore()


@pytest.fixture
def make_memory_store():
    """Factory for in-memory stores with injected failures."""
    return MemoryChunkStore


@pytest.fixture
def storage_root(tmp_path):
    """
    Temporary root for the local backend.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to an empty storage directory
    """
    root = tmp_path / 'containers'
    root.mkdir()
    return root


@pytest.fixture
def local_settings(monkeypatch, storage_root):
    """Run the app against the local backend with a tiny chunk size."""
    monkeypatch.setattr(settings, "CHUNK_SIZE", TEST_CHUNK_SIZE)
    monkeypatch.setattr(settings, "STORAGE_BACKEND", StorageBackendType.LOCAL)
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(storage_root))
    monkeypatch.setattr(settings, "FINAL_MARKER_MODE", FinalMarkerMode.NONE)
    monkeypatch.setattr(settings, "PUBLIC_SERVICE_URL", "http://proxy.test")
    monkeypatch.setattr("upload_proxy.core.dependencies._static_store", None)
    return settings


@pytest.fixture
def client(local_settings):
    """Create FastAPI test client backed by the local store."""
    yield TestClient(app)
    app.dependency_overrides.clear()
