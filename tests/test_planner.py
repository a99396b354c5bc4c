"""Tests for chunk planning and progress arithmetic."""

import math

import pytest

from chunkpilot.upload.planner import (
    ChunkRange,
    chunk_range,
    iter_chunk_ranges,
    percent,
    plan_chunks,
)

MB = 1024 * 1024


@pytest.mark.parametrize(
    "total_size, chunk_size, expected",
    [
        (0, 4, 0),
        (1, 4, 1),
        (4, 4, 1),
        (5, 4, 2),
        (250 * MB, 100 * MB, 3),
        (300 * MB, 100 * MB, 3),
    ],
)
def test_plan_chunks(total_size, chunk_size, expected):
    """Test that the plan is the ceiling of size over chunk size."""
    assert plan_chunks(total_size, chunk_size) == expected


def test_plan_matches_ceil_for_many_sizes():
    """Test plan_chunks against math.ceil over a range of sizes."""
    for chunk_size in (1, 3, 7, 16):
        for total_size in range(0, 100):
            assert plan_chunks(total_size, chunk_size) == math.ceil(total_size / chunk_size)


def test_ranges_cover_file_exactly():
    """Test that chunk ranges are contiguous and cover [0, total_size)."""
    for chunk_size in (1, 3, 7, 16):
        for total_size in range(0, 60):
            ranges = list(iter_chunk_ranges(total_size, chunk_size))
            assert len(ranges) == plan_chunks(total_size, chunk_size)

            position = 0
            for expected_index, byte_range in enumerate(ranges):
                assert byte_range.index == expected_index
                assert byte_range.start == position
                assert 0 < byte_range.size <= chunk_size
                position = byte_range.end
            assert position == total_size


def test_chunk_range_last_chunk_is_short():
    """Test the final chunk of a 250MB file in 100MB chunks."""
    assert chunk_range(2, 250 * MB, 100 * MB) == ChunkRange(2, 200 * MB, 250 * MB)
    assert chunk_range(2, 250 * MB, 100 * MB).size == 50 * MB


def test_chunk_range_matches_iteration():
    """Test that chunk_range agrees with iter_chunk_ranges."""
    for byte_range in iter_chunk_ranges(23, 5):
        assert chunk_range(byte_range.index, 23, 5) == byte_range


@pytest.mark.parametrize("index", [-1, 3, 10])
def test_chunk_range_out_of_plan(index):
    """Test that indices outside the plan are rejected."""
    with pytest.raises(IndexError):
        chunk_range(index, 10, 4)


def test_plan_rejects_invalid_sizes():
    """Test that negative sizes and non-positive chunk sizes are rejected."""
    with pytest.raises(ValueError, match="total_size"):
        plan_chunks(-1, 4)
    with pytest.raises(ValueError, match="chunk_size"):
        plan_chunks(10, 0)


@pytest.mark.parametrize(
    "uploaded, total, expected",
    [
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 66),
        (3, 3, 100),
        (0, 0, 0),
        (5, 0, 0),
        (7, 3, 100),
        (-1, 3, 0),
    ],
)
def test_percent(uploaded, total, expected):
    """Test floor percentages, the empty plan convention and clamping."""
    assert percent(uploaded, total) == expected


def test_percent_is_monotonic():
    """Test that percent never decreases as the uploaded count grows."""
    for total in (1, 3, 7, 100, 101):
        values = [percent(count, total) for count in range(total + 1)]
        assert values == sorted(values)
        assert values[-1] == 100
