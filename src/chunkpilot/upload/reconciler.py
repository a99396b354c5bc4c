"""Matching a previously known upload session to the selected file."""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from chunkpilot.backends.base import UploadBackend
from chunkpilot.models.upload import UploadSession
from chunkpilot.upload.chunks import ChunkIndexSet
from chunkpilot.upload.planner import percent, plan_chunks
from chunkpilot.upload.sources import UploadSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingResumeState:
    """A session waiting for the user to reselect its file."""

    session: UploadSession
    uploaded_chunks: ChunkIndexSet


@dataclass(frozen=True)
class Resume:
    """The selected file matches: transmit from ``from_index``."""

    from_index: int
    uploaded_chunks: ChunkIndexSet
    progress: int


@dataclass(frozen=True)
class AwaitReselect:
    """The selected file does not match; the caller drops its selection."""

    pending: PendingResumeState
    progress: int


ReconcileResult = Union[Resume, AwaitReselect]


class SessionReconciler:
    """Decides whether an interrupted session can resume with the selected file.

    Holds at most one :class:`PendingResumeState`. It is consumed by the
    next :meth:`take_pending` call whose file name matches, or dropped by
    :meth:`clear`.
    """

    def __init__(self, backend: UploadBackend, chunk_size: int):
        self.backend = backend
        self.chunk_size = chunk_size
        self._pending: Optional[PendingResumeState] = None

    @property
    def pending(self) -> Optional[PendingResumeState]:
        return self._pending

    async def reconcile(
        self, session: UploadSession, selected: Optional[UploadSource]
    ) -> ReconcileResult:
        """Fetch the session's chunk state and compare it with the selection.

        A matching selection always resumes from index 0: already uploaded
        chunks are skipped by the transmit loop.

        Raises:
            OracleQueryError: If the uploaded chunk set cannot be fetched
        """
        uploaded = ChunkIndexSet(await self.backend.get_uploaded_chunks(session.id))
        total_chunks = plan_chunks(session.total_size, self.chunk_size)
        progress = percent(uploaded.count_below(total_chunks), total_chunks)

        if selected is not None and selected.name == session.file_name:
            logger.info(
                "Session matches selected file",
                extra={"session_id": session.id, "file_name": session.file_name,
                       "uploaded_chunks": len(uploaded), "total_chunks": total_chunks},
            )
            return Resume(from_index=0, uploaded_chunks=uploaded, progress=progress)

        self._pending = PendingResumeState(session=session, uploaded_chunks=uploaded)
        logger.info(
            "Session staged until its file is reselected",
            extra={"session_id": session.id, "file_name": session.file_name,
                   "selected_file": selected.name if selected else None},
        )
        return AwaitReselect(pending=self._pending, progress=progress)

    def take_pending(self, selected: UploadSource) -> Optional[PendingResumeState]:
        """Consume the pending state if ``selected`` is the file it waits for."""
        pending = self._pending
        if pending is None or selected.name != pending.session.file_name:
            return None
        self._pending = None
        return pending

    def clear(self) -> None:
        self._pending = None
