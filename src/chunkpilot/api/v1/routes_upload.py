"""Upload control API routes."""

import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException

from chunkpilot.backends.factory import get_upload_backend
from chunkpilot.core.config import settings
from chunkpilot.models.upload import (
    ControllerStatus,
    SelectFileRequest,
    SessionLinks,
    SessionView,
)
from chunkpilot.upload.controller import UploadSessionController
from chunkpilot.upload.exceptions import BackendError, UploadError, UploadStateError
from chunkpilot.upload.sources import LocalFileSource

router = APIRouter(prefix="/api/v1/uploads", tags=["upload"])
logger = logging.getLogger(__name__)


@lru_cache
def get_upload_controller() -> UploadSessionController:
    """Return the process-wide upload controller."""
    return UploadSessionController(get_upload_backend(), chunk_size=settings.chunk_size_bytes)


async def _run_transfer(operation: Callable[..., Awaitable[Any]], *args: Any) -> None:
    """Run a controller operation after the response is sent.

    Upload failures are already recorded on the controller (state, last
    error, activity log) and are reported through ``GET /status``.
    """
    try:
        await operation(*args)
    except UploadError as e:
        logger.warning(
            f"Background upload operation failed: {e}",
            extra={"operation": getattr(operation, "__name__", str(operation)),
                   "error_type": type(e).__name__},
        )


def _with_links(controller: UploadSessionController, sessions: list[SessionView]) -> list[SessionLinks]:
    return [
        SessionLinks(
            session=session,
            download_url=controller.download_url(session.id),
            download_zip_url=controller.download_zip_url(session.id),
        )
        for session in sessions
    ]


@router.get("/status", response_model=ControllerStatus)
async def get_status(
    controller: UploadSessionController = Depends(get_upload_controller),
) -> ControllerStatus:
    """Return the controller state, progress and activity log."""
    return controller.status()


@router.post("/file", response_model=ControllerStatus)
async def select_file(
    background_tasks: BackgroundTasks,
    request: SelectFileRequest = Body(...),
    controller: UploadSessionController = Depends(get_upload_controller),
) -> ControllerStatus:
    """Select a local file. Resumes a staged session waiting for this file."""
    try:
        source = LocalFileSource(request.path)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        pending = controller.select_file(source)
    except UploadStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if pending is not None:
        logger.info(
            f"Resuming staged session: session_id={pending.session.id}, file_name={source.name}"
        )
        background_tasks.add_task(_run_transfer, controller.resume_pending, pending)
    return controller.status()


@router.post("/start", response_model=ControllerStatus, status_code=202)
async def start_upload(
    background_tasks: BackgroundTasks,
    controller: UploadSessionController = Depends(get_upload_controller),
) -> ControllerStatus:
    """Start uploading the selected file in a new session."""
    if controller.source is None:
        raise HTTPException(status_code=400, detail="No file selected")
    if controller.is_active:
        raise HTTPException(
            status_code=409, detail=f"Upload already {controller.state.value}"
        )

    background_tasks.add_task(_run_transfer, controller.start, controller.source)
    return controller.status()


@router.post("/pause", response_model=ControllerStatus)
async def pause_upload(
    controller: UploadSessionController = Depends(get_upload_controller),
) -> ControllerStatus:
    """Ask the running upload to pause before its next chunk."""
    if not controller.pause():
        raise HTTPException(
            status_code=409, detail=f"Cannot pause while {controller.state.value}"
        )
    return controller.status()


@router.post("/resume", response_model=ControllerStatus, status_code=202)
async def resume_upload(
    background_tasks: BackgroundTasks,
    controller: UploadSessionController = Depends(get_upload_controller),
) -> ControllerStatus:
    """Resume a paused or failed upload."""
    if not controller.can_resume:
        raise HTTPException(
            status_code=409,
            detail=f"Nothing to resume while {controller.state.value}",
        )

    background_tasks.add_task(_run_transfer, controller.resume)
    return controller.status()


@router.post("/reset", response_model=ControllerStatus)
async def reset_controller(
    controller: UploadSessionController = Depends(get_upload_controller),
) -> ControllerStatus:
    """Drop the current session, selection and any staged resume."""
    try:
        controller.reset()
    except UploadStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return controller.status()


@router.post("/sessions/{session_id}/resume", response_model=ControllerStatus, status_code=202)
async def resume_session(
    session_id: str,
    background_tasks: BackgroundTasks,
    controller: UploadSessionController = Depends(get_upload_controller),
) -> ControllerStatus:
    """Resume an unfinished session listed by the backend."""
    if controller.is_active:
        raise HTTPException(
            status_code=409, detail=f"Upload already {controller.state.value}"
        )

    try:
        sessions = await controller.list_unfinished_sessions()
    except BackendError as e:
        logger.error(f"Failed to list unfinished sessions: {e}")
        raise HTTPException(status_code=502, detail="Upload backend unavailable")

    session = next((s for s in sessions if s.id == session_id), None)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unfinished session {session_id} not found")

    background_tasks.add_task(_run_transfer, controller.resume_session, session)
    return controller.status()


@router.get("/sessions/finished", response_model=list[SessionLinks])
async def list_finished_sessions(
    controller: UploadSessionController = Depends(get_upload_controller),
) -> list[SessionLinks]:
    """List completed uploads with their download links."""
    try:
        sessions = await controller.list_finished_sessions()
    except BackendError as e:
        logger.error(f"Failed to list finished sessions: {e}")
        raise HTTPException(status_code=502, detail="Upload backend unavailable")
    return _with_links(controller, sessions)


@router.get("/sessions/unfinished", response_model=list[SessionLinks])
async def list_unfinished_sessions(
    controller: UploadSessionController = Depends(get_upload_controller),
) -> list[SessionLinks]:
    """List uploads that can still be resumed."""
    try:
        sessions = await controller.list_unfinished_sessions()
    except BackendError as e:
        logger.error(f"Failed to list unfinished sessions: {e}")
        raise HTTPException(status_code=502, detail="Upload backend unavailable")
    return _with_links(controller, sessions)
