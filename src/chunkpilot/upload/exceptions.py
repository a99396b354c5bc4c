"""Exceptions raised by the upload controller and its backends."""

from typing import Optional


class UploadError(Exception):
    """Base exception for upload operations."""
    pass


class InitializationError(UploadError):
    """Exception raised when the backend cannot open an upload session."""
    pass


class OracleQueryError(UploadError):
    """Exception raised when the uploaded-chunk set cannot be fetched."""
    pass


class ChunkTransmissionError(UploadError):
    """Exception raised when a chunk cannot be stored by the backend."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class CompletionError(UploadError):
    """Exception raised when the backend rejects the completion call."""
    pass


class BackendError(UploadError):
    """Exception raised when a read-only backend call (listing) fails."""
    pass


class UploadStateError(UploadError):
    """Exception raised when an operation is invalid in the current state."""
    pass
