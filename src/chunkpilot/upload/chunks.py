"""Set of chunk indices known to be stored by the backend."""

from typing import Iterable, Iterator


class ChunkIndexSet:
    """Monotonic set of uploaded chunk indices.

    Indices can be added but never removed, so the set only grows over the
    lifetime of a session.
    """

    def __init__(self, indices: Iterable[int] = ()):
        self._indices: set[int] = set()
        for index in indices:
            self.add(index)

    def add(self, index: int) -> None:
        """Mark ``index`` as uploaded.

        Raises:
            ValueError: If ``index`` is not a non-negative integer
        """
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"chunk index must be a non-negative integer, got {index!r}")
        self._indices.add(index)

    def __contains__(self, index: object) -> bool:
        return index in self._indices

    def __len__(self) -> int:
        return len(self._indices)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._indices))

    def __bool__(self) -> bool:
        return bool(self._indices)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ChunkIndexSet):
            return self._indices == other._indices
        return NotImplemented

    def __repr__(self) -> str:
        return f"ChunkIndexSet({sorted(self._indices)})"

    def count_below(self, total_chunks: int) -> int:
        """Count indices that fall inside a plan of ``total_chunks``."""
        return sum(1 for index in self._indices if index < total_chunks)
