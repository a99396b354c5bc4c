"""
Resumable chunked upload core.

Splits a file into fixed-size chunks, sends them one at a time to an upload
backend, skips chunks the backend already stores, and supports pausing,
resuming and reconciling interrupted sessions.
"""

from chunkpilot.upload.chunks import ChunkIndexSet
from chunkpilot.upload.controller import UploadSessionController
from chunkpilot.upload.exceptions import (
    BackendError,
    ChunkTransmissionError,
    CompletionError,
    InitializationError,
    OracleQueryError,
    UploadError,
    UploadStateError,
)
from chunkpilot.upload.planner import ChunkRange, chunk_range, iter_chunk_ranges, percent, plan_chunks
from chunkpilot.upload.reconciler import AwaitReselect, PendingResumeState, Resume, SessionReconciler
from chunkpilot.upload.sources import BytesSource, LocalFileSource, UploadSource

__all__ = [
    "AwaitReselect",
    "BackendError",
    "BytesSource",
    "ChunkIndexSet",
    "ChunkRange",
    "ChunkTransmissionError",
    "CompletionError",
    "InitializationError",
    "LocalFileSource",
    "OracleQueryError",
    "PendingResumeState",
    "Resume",
    "SessionReconciler",
    "UploadError",
    "UploadSessionController",
    "UploadSource",
    "UploadStateError",
    "chunk_range",
    "iter_chunk_ranges",
    "percent",
    "plan_chunks",
]
