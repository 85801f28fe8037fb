"""
Trustless File Server — Chunk Planning

Derives the chunk size and piece count of a file from its size alone,
so every party can recompute them from the persisted file_size.
"""

from dataclasses import dataclass
from typing import Iterator

from .config import MAX_FILE_SIZE, MAX_PIECES, MIN_CHUNK_SIZE, TARGET_PIECES
from .errors import InvalidInput


@dataclass(frozen=True)
class ChunkPlan:
    """How a file of `file_size` bytes is split into pieces."""

    file_size: int
    chunk_size: int
    pieces: int
    has_boundary: bool

    @property
    def boundary_size(self) -> int:
        """Length of the last piece (equals chunk_size when there is no boundary)."""
        if self.pieces == 0:
            return 0
        return self.file_size - (self.pieces - 1) * self.chunk_size


def chunk_size_for(file_size: int) -> int:
    """Chunk size targeting TARGET_PIECES pieces, never below 1 KiB.

    file_size / TARGET_PIECES is rounded up, not floored, so sizes like
    65537 plan 64 pieces instead of 65.
    """
    return max(-(-file_size // TARGET_PIECES), MIN_CHUNK_SIZE)


def plan(file_size: int) -> ChunkPlan:
    """
    Plan the chunking of a file.

    Args:
        file_size: Total file length in bytes

    Returns:
        ChunkPlan with chunk size, piece count and boundary flag.
        A zero-sized file yields a plan with zero pieces.
    """
    if file_size < 0:
        raise InvalidInput(f"File size cannot be negative: {file_size}")

    chunk_size = chunk_size_for(file_size)
    pieces = -(-file_size // chunk_size)
    return ChunkPlan(
        file_size=file_size,
        chunk_size=chunk_size,
        pieces=pieces,
        has_boundary=file_size % chunk_size != 0,
    )


def check_plan(chunk_plan: ChunkPlan) -> None:
    """
    Reject plans that cannot be turned into a tree.

    Raises:
        InvalidInput: If the file is empty, too large for the record
            format, or would need more than MAX_PIECES leaves
    """
    if chunk_plan.pieces == 0:
        raise InvalidInput("Cannot build a merkle tree for an empty file")
    if chunk_plan.file_size > MAX_FILE_SIZE:
        raise InvalidInput(
            f"File too large: {chunk_plan.file_size} bytes (max {MAX_FILE_SIZE})"
        )
    if chunk_plan.pieces > MAX_PIECES:
        raise InvalidInput(
            f"File needs {chunk_plan.pieces} pieces, only {MAX_PIECES} supported"
        )


def iter_chunks(file_bytes: bytes, chunk_size: int) -> Iterator[bytes]:
    """Yield consecutive raw chunks; the last one may be shorter."""
    if chunk_size <= 0:
        raise InvalidInput(f"Chunk size must be positive, got {chunk_size}")
    view = memoryview(file_bytes)
    for offset in range(0, len(file_bytes), chunk_size):
        yield bytes(view[offset:offset + chunk_size])


def pad_chunk(chunk: bytes, chunk_size: int) -> bytes:
    """Zero-pad a boundary chunk up to the full chunk size."""
    if len(chunk) > chunk_size:
        raise InvalidInput(
            f"Chunk of {len(chunk)} bytes exceeds chunk size {chunk_size}"
        )
    return chunk + bytes(chunk_size - len(chunk))


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()
