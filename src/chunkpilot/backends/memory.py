"""In-process upload backend."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import uuid4

from chunkpilot.backends.base import UploadBackend
from chunkpilot.models.upload import SessionView
from chunkpilot.upload.exceptions import (
    ChunkTransmissionError,
    CompletionError,
    InitializationError,
    OracleQueryError,
)
from chunkpilot.upload.planner import plan_chunks

logger = logging.getLogger(__name__)


@dataclass
class StoredSession:
    """Session bookkeeping kept by the in-memory backend."""

    id: str
    file_name: str
    total_size: int
    created_at: datetime
    chunks: Dict[int, bytes] = field(default_factory=dict)
    completed_at: Optional[datetime] = None

    @property
    def finished(self) -> bool:
        return self.completed_at is not None


class InMemoryUploadBackend(UploadBackend):
    """Upload backend that keeps sessions and chunk bytes in memory.

    Implements the same contract as the remote store: chunk puts overwrite,
    completion is idempotent, and completion requires every chunk.
    """

    def __init__(self, chunk_size: int, base_url: str = "memory://uploads"):
        self.chunk_size = chunk_size
        self.base_url = base_url.rstrip("/")
        self._sessions: Dict[str, StoredSession] = {}

    def _get(self, session_id: str) -> Optional[StoredSession]:
        return self._sessions.get(session_id)

    async def init_session(self, file_name: str, total_size: int) -> str:
        if not file_name:
            raise InitializationError("file_name is required")
        if total_size < 0:
            raise InitializationError(f"total_size must be non-negative, got {total_size}")

        session_id = str(uuid4())
        self._sessions[session_id] = StoredSession(
            id=session_id,
            file_name=file_name,
            total_size=total_size,
            created_at=datetime.now(timezone.utc),
        )
        logger.debug(f"Session created: session_id={session_id}, file_name={file_name}, size={total_size}")
        return session_id

    async def get_uploaded_chunks(self, session_id: str) -> set[int]:
        stored = self._get(session_id)
        if stored is None:
            raise OracleQueryError(f"Unknown upload session: {session_id}")
        return set(stored.chunks)

    async def put_chunk(self, session_id: str, index: int, data: bytes) -> None:
        stored = self._get(session_id)
        if stored is None:
            raise ChunkTransmissionError(f"Unknown upload session: {session_id}", index=index)
        total_chunks = plan_chunks(stored.total_size, self.chunk_size)
        if not 0 <= index < total_chunks:
            raise ChunkTransmissionError(
                f"Chunk index {index} out of range for {total_chunks} chunks", index=index
            )
        stored.chunks[index] = data

    async def complete_session(self, session_id: str) -> None:
        stored = self._get(session_id)
        if stored is None:
            raise CompletionError(f"Unknown upload session: {session_id}")
        if stored.finished:
            return

        total_chunks = plan_chunks(stored.total_size, self.chunk_size)
        missing = sorted(set(range(total_chunks)) - set(stored.chunks))
        if missing:
            raise CompletionError(f"Session {session_id} is missing chunks {missing}")
        stored.completed_at = datetime.now(timezone.utc)

    def assembled_bytes(self, session_id: str) -> bytes:
        """Return the concatenated chunks of a session, in index order."""
        stored = self._sessions[session_id]
        return b"".join(stored.chunks[index] for index in sorted(stored.chunks))

    def _view(self, stored: StoredSession) -> SessionView:
        return SessionView(
            id=stored.id,
            file_name=stored.file_name,
            total_size=stored.total_size,
            status="finished" if stored.finished else "unfinished",
            created_at=stored.created_at,
            uploaded_chunks=sorted(stored.chunks),
        )

    async def list_finished_sessions(self) -> list[SessionView]:
        return [self._view(s) for s in self._sessions.values() if s.finished]

    async def list_unfinished_sessions(self) -> list[SessionView]:
        return [self._view(s) for s in self._sessions.values() if not s.finished]

    def download_url(self, session_id: str) -> str:
        return f"{self.base_url}/download/{session_id}"

    def download_zip_url(self, session_id: str) -> str:
        return f"{self.base_url}/download/{session_id}/zip"
