"""Pytest configuration and shared fixtures."""

from typing import Awaitable, Callable, Optional

import pytest

from chunkpilot.backends.memory import InMemoryUploadBackend
from chunkpilot.upload.controller import UploadSessionController
from chunkpilot.upload.exceptions import (
    ChunkTransmissionError,
    CompletionError,
    InitializationError,
    OracleQueryError,
)
from chunkpilot.upload.sources import BytesSource

CHUNK_SIZE = 4


class RecordingBackend(InMemoryUploadBackend):
    """In-memory backend that records calls and can inject failures."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        super().__init__(chunk_size=chunk_size)
        self.oracle_queries: list[str] = []
        self.put_calls: list[int] = []
        self.completions: list[str] = []
        self.fail_init = False
        self.fail_oracle = False
        self.fail_put_at: set[int] = set()
        self.fail_completion = False
        self.on_put: Optional[Callable[[int], Awaitable[None]]] = None

    async def init_session(self, file_name: str, total_size: int) -> str:
        if self.fail_init:
            raise InitializationError("backend unavailable")
        return await super().init_session(file_name, total_size)

    async def get_uploaded_chunks(self, session_id: str) -> set[int]:
        self.oracle_queries.append(session_id)
        if self.fail_oracle:
            raise OracleQueryError("oracle unavailable")
        return await super().get_uploaded_chunks(session_id)

    async def put_chunk(self, session_id: str, index: int, data: bytes) -> None:
        if index in self.fail_put_at:
            raise ChunkTransmissionError(f"chunk {index} rejected", index=index)
        await super().put_chunk(session_id, index, data)
        self.put_calls.append(index)
        if self.on_put is not None:
            await self.on_put(index)

    async def complete_session(self, session_id: str) -> None:
        self.completions.append(session_id)
        if self.fail_completion:
            raise CompletionError("completion rejected")
        await super().complete_session(session_id)

    def reset_calls(self) -> None:
        self.oracle_queries.clear()
        self.put_calls.clear()
        self.completions.clear()


@pytest.fixture
def backend():
    """Create a fresh recording backend for each test."""
    return RecordingBackend()


@pytest.fixture
def controller(backend):
    """Create a controller wired to the recording backend."""
    return UploadSessionController(backend, chunk_size=CHUNK_SIZE)


@pytest.fixture
def make_source():
    """Build an in-memory source of ``size`` bytes with distinct content."""

    def _make(name: str = "a.txt", size: int = 20) -> BytesSource:
        return BytesSource(name, bytes(i % 251 for i in range(size)))

    return _make
