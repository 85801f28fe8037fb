import pytest

from trustless_fs.chunking import (
    check_plan,
    iter_chunks,
    next_power_of_two,
    pad_chunk,
    plan,
)
from trustless_fs.config import MAX_PIECES
from trustless_fs.errors import InvalidInput


def test_small_files_use_minimum_chunk_size():
    chunk_plan = plan(1)
    assert chunk_plan.chunk_size == 1024
    assert chunk_plan.pieces == 1
    assert chunk_plan.has_boundary
    assert chunk_plan.boundary_size == 1


def test_exact_multiple_has_no_boundary():
    chunk_plan = plan(12 * 1024)
    assert chunk_plan.chunk_size == 1024
    assert chunk_plan.pieces == 12
    assert not chunk_plan.has_boundary
    assert chunk_plan.boundary_size == 1024


def test_large_file_targets_64_pieces():
    chunk_plan = plan(64 * 4096)
    assert chunk_plan.chunk_size == 4096
    assert chunk_plan.pieces == 64
    assert not chunk_plan.has_boundary


def test_chunk_size_rounds_up_to_stay_within_budget():
    # 100000 / 64 = 1562.5
    chunk_plan = plan(100_000)
    assert chunk_plan.chunk_size == 1563
    assert chunk_plan.pieces == 64
    assert chunk_plan.has_boundary
    assert chunk_plan.boundary_size == 100_000 - 63 * 1563


@pytest.mark.parametrize("size", [1, 1023, 1024, 1025, 65_536, 65_537, 65_599, 1_000_003, 2 ** 32 - 1])
def test_piece_count_never_exceeds_budget(size):
    chunk_plan = plan(size)
    assert 1 <= chunk_plan.pieces <= MAX_PIECES
    assert (chunk_plan.pieces - 1) * chunk_plan.chunk_size < size <= chunk_plan.pieces * chunk_plan.chunk_size


def test_empty_file_is_rejected():
    chunk_plan = plan(0)
    assert chunk_plan.pieces == 0
    with pytest.raises(InvalidInput):
        check_plan(chunk_plan)


def test_negative_size_is_rejected():
    with pytest.raises(InvalidInput):
        plan(-1)


def test_oversized_file_is_rejected():
    with pytest.raises(InvalidInput):
        check_plan(plan(2 ** 32))


def test_iter_chunks_keeps_boundary_unpadded():
    chunks = list(iter_chunks(b"a" * 2500, 1024))
    assert [len(c) for c in chunks] == [1024, 1024, 452]
    assert b"".join(chunks) == b"a" * 2500


def test_pad_chunk():
    assert pad_chunk(b"\x01", 4) == b"\x01\x00\x00\x00"
    with pytest.raises(InvalidInput):
        pad_chunk(b"12345", 4)


@pytest.mark.parametrize("n,expected", [(0, 1), (1, 1), (2, 2), (3, 4), (12, 16), (64, 64), (65, 128)])
def test_next_power_of_two(n, expected):
    assert next_power_of_two(n) == expected
