"""Abstract upload backend interface."""

from abc import ABC, abstractmethod

from chunkpilot.models.upload import SessionView


class UploadBackend(ABC):
    """Abstract base class for remote upload stores.

    The backend is the system of record for sessions and the authority on
    which chunk indices are stored (the "oracle").
    """

    @abstractmethod
    async def init_session(self, file_name: str, total_size: int) -> str:
        """Open a new upload session.

        Args:
            file_name: Name of the source file
            total_size: Size of the source file in bytes

        Returns:
            Backend-assigned session identifier

        Raises:
            InitializationError: If the session cannot be created
        """
        pass

    @abstractmethod
    async def get_uploaded_chunks(self, session_id: str) -> set[int]:
        """Return the chunk indices already stored for a session.

        Raises:
            OracleQueryError: If the query fails
        """
        pass

    @abstractmethod
    async def put_chunk(self, session_id: str, index: int, data: bytes) -> None:
        """Store one chunk. Storing the same index twice must be harmless.

        Raises:
            ChunkTransmissionError: If the chunk is not stored
        """
        pass

    @abstractmethod
    async def complete_session(self, session_id: str) -> None:
        """Finalize a session. Must be safe to repeat.

        Raises:
            CompletionError: If the backend rejects completion
        """
        pass

    @abstractmethod
    async def list_finished_sessions(self) -> list[SessionView]:
        """List completed sessions."""
        pass

    @abstractmethod
    async def list_unfinished_sessions(self) -> list[SessionView]:
        """List sessions that still have chunks outstanding."""
        pass

    @abstractmethod
    def download_url(self, session_id: str) -> str:
        """Return the retrieval locator of a finished upload."""
        pass

    @abstractmethod
    def download_zip_url(self, session_id: str) -> str:
        """Return the retrieval locator of a finished upload as a zip archive."""
        pass

    async def aclose(self) -> None:
        """Release any held resources."""
        return None
