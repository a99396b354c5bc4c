"""Chunk planning and progress arithmetic.

Both are pure functions of sizes and counts, with no I/O.
"""

from typing import Iterator, NamedTuple


class ChunkRange(NamedTuple):
    """Half-open byte range ``[start, end)`` of one chunk."""

    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


def _check_sizes(total_size: int, chunk_size: int) -> None:
    if total_size < 0:
        raise ValueError(f"total_size must be non-negative, got {total_size}")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")


def plan_chunks(total_size: int, chunk_size: int) -> int:
    """Return the number of chunks needed to cover ``total_size`` bytes.

    Args:
        total_size: File size in bytes (>= 0)
        chunk_size: Maximum chunk size in bytes (> 0)

    Returns:
        ``ceil(total_size / chunk_size)``; 0 for an empty file

    Raises:
        ValueError: If either size is out of range
    """
    _check_sizes(total_size, chunk_size)
    return -(-total_size // chunk_size)


def chunk_range(index: int, total_size: int, chunk_size: int) -> ChunkRange:
    """Return the byte range covered by chunk ``index``.

    Raises:
        IndexError: If ``index`` is not part of the plan
    """
    total_chunks = plan_chunks(total_size, chunk_size)
    if not 0 <= index < total_chunks:
        raise IndexError(f"chunk index {index} out of range for {total_chunks} chunks")
    start = index * chunk_size
    return ChunkRange(index, start, min(start + chunk_size, total_size))


def iter_chunk_ranges(total_size: int, chunk_size: int) -> Iterator[ChunkRange]:
    """Yield every chunk range of the plan in increasing index order."""
    for index in range(plan_chunks(total_size, chunk_size)):
        start = index * chunk_size
        yield ChunkRange(index, start, min(start + chunk_size, total_size))


def percent(uploaded_count: int, total_chunks: int) -> int:
    """Return upload progress as an integer percentage in ``[0, 100]``.

    An empty plan reports 0.
    """
    if total_chunks <= 0:
        return 0
    uploaded_count = max(0, min(uploaded_count, total_chunks))
    return (uploaded_count * 100) // total_chunks
