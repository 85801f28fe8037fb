import hashlib

import pytest


def make_bytes(size: int, seed: bytes = b"tfs") -> bytes:
    """Deterministic pseudo-random content of `size` bytes."""
    out = bytearray()
    counter = 0
    while len(out) < size:
        out += hashlib.sha256(seed + counter.to_bytes(8, "big")).digest()
        counter += 1
    return bytes(out[:size])


@pytest.fixture
def twelve_chunk_file() -> bytes:
    """12 full 1 KiB chunks, no boundary."""
    return make_bytes(12 * 1024)


@pytest.fixture
def boundary_file() -> bytes:
    """Two full chunks plus a 952-byte boundary chunk."""
    return make_bytes(3000)
