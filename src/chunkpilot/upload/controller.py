"""Upload session state machine.

The controller owns one upload at a time: it opens a session, walks the
chunk plan in increasing index order, skips chunks the backend already has,
and completes the session once every chunk is stored. Pausing is
cooperative. ``pause()`` only raises a flag, and the transmit loop checks it
before each chunk, so an in-flight chunk always finishes first.

All methods must be called from the event loop that runs the transfer.
"""

import asyncio
import logging
from typing import Iterable, Optional

from chunkpilot.backends.base import UploadBackend
from chunkpilot.core.config import settings
from chunkpilot.core.logging import upload_session_context
from chunkpilot.models.upload import (
    ActivityEvent,
    ControllerStatus,
    SessionView,
    UploadSession,
    UploadState,
)
from chunkpilot.upload.activity import ActivityLog
from chunkpilot.upload.chunks import ChunkIndexSet
from chunkpilot.upload.exceptions import (
    ChunkTransmissionError,
    CompletionError,
    InitializationError,
    OracleQueryError,
    UploadError,
    UploadStateError,
)
from chunkpilot.upload.planner import chunk_range, percent, plan_chunks
from chunkpilot.upload.reconciler import (
    PendingResumeState,
    ReconcileResult,
    Resume,
    SessionReconciler,
)
from chunkpilot.upload.sources import UploadSource

logger = logging.getLogger(__name__)

ACTIVE_STATES = frozenset(
    [UploadState.INITIALIZING, UploadState.TRANSMITTING, UploadState.COMPLETING]
)
RESUMABLE_STATES = frozenset([UploadState.PAUSED, UploadState.FAILED])


class UploadSessionController:
    """Drives a single resumable chunked upload."""

    def __init__(
        self,
        backend: UploadBackend,
        chunk_size: Optional[int] = None,
        reconciler: Optional[SessionReconciler] = None,
    ):
        self.backend = backend
        self.chunk_size = chunk_size or settings.chunk_size_bytes
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        self.reconciler = reconciler or SessionReconciler(backend, self.chunk_size)
        self.log = ActivityLog()

        self.state = UploadState.IDLE
        self.source: Optional[UploadSource] = None
        self.session_id: Optional[str] = None
        self.current_chunk_index = 0
        self.total_chunks: Optional[int] = None
        self.progress = 0
        self.last_error: Optional[str] = None
        # (file_name, total_size) of the file the current session belongs to
        self._session_file: Optional[tuple[str, int]] = None

        self._pause_requested = asyncio.Event()
        self._loop_running = False

    # State helpers

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES or self._loop_running

    @property
    def can_resume(self) -> bool:
        return (
            self.state in RESUMABLE_STATES
            and self.source is not None
            and self.session_id is not None
            and self._matches_session_file(self.source)
            and not self._loop_running
        )

    def _matches_session_file(self, source: UploadSource) -> bool:
        if self._session_file is None:
            return True
        return (source.name, source.size) == self._session_file

    def _set_state(self, state: UploadState) -> None:
        if state is not self.state:
            logger.debug(
                f"Upload state {self.state.value} -> {state.value}",
                extra={"session_id": self.session_id},
            )
        self.state = state

    def _fail(self, error: UploadError) -> None:
        self.last_error = str(error)
        self._set_state(UploadState.FAILED)
        self.log.append(ActivityEvent.FAILED, f"Upload failed: {error}")
        logger.error(
            "Upload failed",
            extra={
                "session_id": self.session_id,
                "error": str(error),
                "error_type": type(error).__name__,
                "chunk_index": self.current_chunk_index,
            },
        )

    # Operations

    async def start(self, source: Optional[UploadSource]) -> UploadState:
        """Open a new session for ``source`` and upload it from chunk 0.

        Raises:
            ValueError: If no source is given
            UploadStateError: If a transfer is already running
            InitializationError: If the backend cannot open a session
        """
        if source is None:
            raise ValueError("A file must be selected before starting an upload")
        if self.is_active:
            raise UploadStateError(f"Cannot start an upload while {self.state.value}")

        self.source = source
        self.progress = 0
        self.last_error = None
        self.total_chunks = None
        self._pause_requested.clear()
        self.log.clear()
        self._set_state(UploadState.INITIALIZING)

        try:
            session_id = await self.backend.init_session(source.name, source.size)
        except InitializationError as e:
            self._fail(e)
            raise
        except Exception as e:
            self._fail(UploadError(f"Unexpected error during initialization: {e}"))
            raise

        self.session_id = session_id
        self.current_chunk_index = 0
        self.log.append(
            ActivityEvent.STARTED, f"Started upload of {source.name} ({source.size} bytes)"
        )
        return await self.transmit(session_id, source, self.current_chunk_index)

    def pause(self) -> bool:
        """Ask the running transfer to stop before its next chunk.

        Returns:
            True if the request was accepted, False if nothing is transmitting
        """
        if self.state is not UploadState.TRANSMITTING:
            logger.warning(
                "Pause ignored: no transfer in progress",
                extra={"state": self.state.value, "session_id": self.session_id},
            )
            return False

        self._pause_requested.set()
        logger.info(
            "Pause requested",
            extra={"session_id": self.session_id, "chunk_index": self.current_chunk_index},
        )
        return True

    async def resume(self) -> bool:
        """Continue a paused or failed upload from the recorded chunk index.

        The uploaded chunk set is queried again from the backend.

        Returns:
            False without doing anything when there is nothing to resume
        """
        if not self.can_resume:
            logger.warning(
                "Resume ignored",
                extra={
                    "state": self.state.value,
                    "session_id": self.session_id,
                    "has_file": self.source is not None,
                },
            )
            return False

        self._pause_requested.clear()
        self.last_error = None
        self.log.append(
            ActivityEvent.RESUMED, f"Resuming upload from chunk {self.current_chunk_index + 1}"
        )
        await self.transmit(self.session_id, self.source, self.current_chunk_index)
        return True

    async def transmit(
        self,
        session_id: str,
        source: UploadSource,
        from_index: int = 0,
        known_uploaded: Optional[Iterable[int]] = None,
    ) -> UploadState:
        """Upload every missing chunk from ``from_index`` on, then complete.

        Args:
            session_id: Backend session to upload into
            source: File to read chunks from
            from_index: First chunk index to consider
            known_uploaded: Chunk indices already stored; when empty or
                omitted the backend is queried instead

        Returns:
            ``PAUSED`` if a pause stopped the loop, ``IDLE`` on completion

        Raises:
            UploadStateError: If another transmit loop is running
            OracleQueryError: If the uploaded chunk set cannot be fetched
            ChunkTransmissionError: If a chunk cannot be stored
            CompletionError: If the backend rejects completion
        """
        if self._loop_running:
            raise UploadStateError("A transfer is already running")
        if from_index < 0:
            raise ValueError(f"from_index must be non-negative, got {from_index}")

        total_chunks = plan_chunks(source.size, self.chunk_size)
        self.session_id = session_id
        self.source = source
        self._session_file = (source.name, source.size)
        self.total_chunks = total_chunks
        self.current_chunk_index = from_index
        self._loop_running = True
        context_token = upload_session_context.set(session_id)
        self._set_state(UploadState.TRANSMITTING)

        try:
            uploaded = ChunkIndexSet(known_uploaded or ())
            if not uploaded:
                try:
                    uploaded = ChunkIndexSet(await self.backend.get_uploaded_chunks(session_id))
                except OracleQueryError as e:
                    self._fail(e)
                    raise

            logger.info(
                "Transmitting chunks",
                extra={
                    "session_id": session_id,
                    "file_name": source.name,
                    "from_index": from_index,
                    "total_chunks": total_chunks,
                    "already_uploaded": len(uploaded),
                },
            )

            for index in range(from_index, total_chunks):
                if self._pause_requested.is_set():
                    self.current_chunk_index = index
                    self._set_state(UploadState.PAUSED)
                    self.log.append(
                        ActivityEvent.PAUSED, f"Upload paused at chunk {index + 1} / {total_chunks}"
                    )
                    return self.state

                if index in uploaded:
                    self.log.append(ActivityEvent.SKIPPED, f"Skipping chunk {index + 1}")
                    continue

                self.current_chunk_index = index
                await self._send_chunk(session_id, source, index)
                uploaded.add(index)

                self.progress = percent(index + 1, total_chunks)
                self.log.append(
                    ActivityEvent.UPLOADED, f"Uploaded chunk {index + 1} / {total_chunks}"
                )

            self.current_chunk_index = total_chunks
            self._set_state(UploadState.COMPLETING)
            try:
                await self.backend.complete_session(session_id)
            except CompletionError as e:
                self._fail(e)
                raise

            self.log.append(ActivityEvent.COMPLETED, "Upload complete!")
            self.session_id = None
            self._session_file = None
            self.current_chunk_index = 0
            self.progress = 100
            self._pause_requested.clear()
            self._set_state(UploadState.IDLE)
            return self.state
        except asyncio.CancelledError:
            # A cancelled task leaves the session resumable from the current index
            self._set_state(UploadState.PAUSED)
            self.log.append(
                ActivityEvent.PAUSED,
                f"Upload interrupted at chunk {self.current_chunk_index + 1} / {total_chunks}",
            )
            raise
        except Exception as e:
            if self.state in ACTIVE_STATES:
                self._fail(UploadError(f"Unexpected error during transfer: {e}"))
            raise
        finally:
            self._loop_running = False
            upload_session_context.reset(context_token)

    async def _send_chunk(self, session_id: str, source: UploadSource, index: int) -> None:
        byte_range = chunk_range(index, source.size, self.chunk_size)
        try:
            data = await source.read_range(byte_range.start, byte_range.end)
        except OSError as e:
            error = ChunkTransmissionError(
                f"Failed to read chunk {index} of {source.name}: {e}", index=index
            )
            self._fail(error)
            raise error from e

        try:
            await self.backend.put_chunk(session_id, index, data)
        except ChunkTransmissionError as e:
            self._fail(e)
            raise

    def select_file(self, source: UploadSource) -> Optional[PendingResumeState]:
        """Select the file to upload.

        If a staged session is waiting for exactly this file, the staged
        state is consumed and returned; pass it to :meth:`resume_pending`.

        Raises:
            UploadStateError: If a transfer is running, or if a paused or
                failed session is held for a different file
        """
        if self.is_active:
            raise UploadStateError(f"Cannot change the selected file while {self.state.value}")
        if (
            self.state in RESUMABLE_STATES
            and self.session_id is not None
            and not self._matches_session_file(source)
        ):
            name, size = self._session_file
            raise UploadStateError(
                f"Session {self.session_id} belongs to {name} ({size} bytes); "
                "reset before selecting another file"
            )

        self.source = source
        pending = self.reconciler.take_pending(source)
        if pending is None:
            return None

        if source.size != pending.session.total_size:
            logger.warning(
                "Reselected file size differs from the session",
                extra={
                    "session_id": pending.session.id,
                    "file_name": source.name,
                    "file_size": source.size,
                    "session_size": pending.session.total_size,
                },
            )
        self.session_id = pending.session.id
        self._session_file = (pending.session.file_name, pending.session.total_size)
        self.current_chunk_index = 0
        self.log.append(ActivityEvent.RESELECTED, "File reselected. Resuming...")
        return pending

    async def resume_pending(self, pending: PendingResumeState) -> UploadState:
        """Transmit a reselected session using its already fetched chunk set."""
        if self.is_active:
            raise UploadStateError(f"Cannot resume a session while {self.state.value}")
        if self.source is None:
            raise UploadStateError("No file selected")
        self._pause_requested.clear()
        self.last_error = None
        return await self.transmit(
            pending.session.id, self.source, 0, pending.uploaded_chunks
        )

    async def resume_session(self, session: UploadSession) -> ReconcileResult:
        """Pick up a previously started session.

        Transmits straight away when the selected file matches the session,
        otherwise stages the session and drops the selection so the user has
        to pick the right file again.

        Raises:
            UploadStateError: If a transfer is running
            OracleQueryError: If the uploaded chunk set cannot be fetched
        """
        if self.is_active:
            raise UploadStateError(f"Cannot resume a session while {self.state.value}")

        self.session_id = session.id
        self._session_file = (session.file_name, session.total_size)
        self.current_chunk_index = 0
        self.last_error = None
        self.total_chunks = plan_chunks(session.total_size, self.chunk_size)

        try:
            result = await self.reconciler.reconcile(session, self.source)
        except OracleQueryError as e:
            self._fail(e)
            raise

        self.progress = result.progress
        self.log.append(ActivityEvent.LOADED, f"Loaded session for file: {session.file_name}")

        if isinstance(result, Resume):
            self.log.append(
                ActivityEvent.RESUMED, f"Resuming upload with selected file: {self.source.name}"
            )
            self._pause_requested.clear()
            await self.transmit(
                session.id, self.source, result.from_index, result.uploaded_chunks
            )
        else:
            self.log.append(
                ActivityEvent.MISMATCH,
                f"File not selected or mismatch. Please reselect: {session.file_name}",
            )
            self.source = None
            self._set_state(UploadState.IDLE)
        return result

    def reset(self) -> None:
        """Forget the current session, selection and staged resume.

        Raises:
            UploadStateError: If a transfer is running
        """
        if self.is_active:
            raise UploadStateError(f"Cannot reset while {self.state.value}")

        self.reconciler.clear()
        self.log.clear()
        self.source = None
        self.session_id = None
        self._session_file = None
        self.current_chunk_index = 0
        self.total_chunks = None
        self.progress = 0
        self.last_error = None
        self._pause_requested.clear()
        self._set_state(UploadState.IDLE)

    def status(self) -> ControllerStatus:
        pending = self.reconciler.pending
        return ControllerStatus(
            state=self.state,
            session_id=self.session_id,
            file_name=self.source.name if self.source else None,
            file_size=self.source.size if self.source else None,
            progress=self.progress,
            current_chunk_index=self.current_chunk_index,
            total_chunks=self.total_chunks,
            pending_file_name=pending.session.file_name if pending else None,
            last_error=self.last_error,
            log=self.log.entries(),
        )

    # Listings

    async def list_finished_sessions(self) -> list[SessionView]:
        return await self.backend.list_finished_sessions()

    async def list_unfinished_sessions(self) -> list[SessionView]:
        return await self.backend.list_unfinished_sessions()

    def download_url(self, session_id: str) -> str:
        return self.backend.download_url(session_id)

    def download_zip_url(self, session_id: str) -> str:
        return self.backend.download_zip_url(session_id)
