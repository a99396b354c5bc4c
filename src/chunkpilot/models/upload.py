"""Upload session data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UploadSession(BaseModel):
    """One upload attempt as known to the backend.

    The backend speaks camelCase (``fileName``, ``totalSize``). Both spellings
    are accepted on input; output always uses the field names.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Backend-assigned session identifier")
    file_name: str = Field(
        ..., validation_alias=AliasChoices("fileName", "file_name"), description="Name of the source file"
    )
    total_size: int = Field(
        ...,
        validation_alias=AliasChoices("totalSize", "total_size"),
        ge=0,
        description="Source file size in bytes",
    )


class SessionView(UploadSession):
    """Read-only listing projection of a finished or unfinished session."""

    status: Optional[str] = None
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("createdAt", "created_at"))
    uploaded_chunks: Optional[list[int]] = Field(
        None, validation_alias=AliasChoices("uploadedChunks", "uploaded_chunks")
    )


class SessionLinks(BaseModel):
    """A listed session together with its retrieval locators."""

    session: SessionView
    download_url: str
    download_zip_url: str


class UploadState(str, Enum):
    """Upload controller state."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    TRANSMITTING = "transmitting"
    PAUSED = "paused"
    COMPLETING = "completing"
    FAILED = "failed"


class ActivityEvent(str, Enum):
    """Kinds of user-visible activity log entries."""

    STARTED = "started"
    SKIPPED = "skipped"
    UPLOADED = "uploaded"
    PAUSED = "paused"
    RESUMED = "resumed"
    COMPLETED = "completed"
    LOADED = "loaded"
    MISMATCH = "mismatch"
    RESELECTED = "reselected"
    FAILED = "failed"


class ActivityEntry(BaseModel):
    """One entry of the append-only activity log."""

    timestamp: datetime
    event: ActivityEvent
    message: str


class ControllerStatus(BaseModel):
    """Snapshot of the upload controller for display."""

    state: UploadState
    session_id: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    progress: int = 0
    current_chunk_index: int = 0
    total_chunks: Optional[int] = None
    pending_file_name: Optional[str] = None
    last_error: Optional[str] = None
    log: list[ActivityEntry] = Field(default_factory=list)


class SelectFileRequest(BaseModel):
    """Request model for selecting a local file to upload."""

    path: str = Field(..., min_length=1, description="Path of the local file")
