"""Upload sources: the file selected for upload."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path


class UploadSource(ABC):
    """Abstract base class for a file that can be uploaded in chunks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """File name reported to the backend."""
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        """Total size in bytes."""
        pass

    @abstractmethod
    async def read_range(self, start: int, end: int) -> bytes:
        """Read the half-open byte range ``[start, end)``.

        Args:
            start: First byte offset
            end: Offset one past the last byte

        Returns:
            Exactly ``end - start`` bytes
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, size={self.size})"


class LocalFileSource(UploadSource):
    """A file on the local filesystem.

    The size is captured at selection time; reads are done in a worker
    thread so chunk I/O does not block the event loop.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"File not found: {self.path}")
        self._size = self.path.stat().st_size

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self._size

    async def read_range(self, start: int, end: int) -> bytes:
        return await asyncio.to_thread(self._read_range, start, end)

    def _read_range(self, start: int, end: int) -> bytes:
        with open(self.path, "rb") as f:
            f.seek(start)
            data = f.read(end - start)
        if len(data) != end - start:
            raise IOError(
                f"Short read from {self.path}: expected {end - start} bytes at offset {start}, got {len(data)}"
            )
        return data


class BytesSource(UploadSource):
    """An in-memory file, mainly for tests and generated content."""

    def __init__(self, name: str, data: bytes):
        self._name = name
        self._data = data

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        return len(self._data)

    async def read_range(self, start: int, end: int) -> bytes:
        return self._data[start:end]
