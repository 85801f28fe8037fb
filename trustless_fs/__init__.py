"""
Trustless File Server

Publishes files as fixed-size chunks committed to by a SHA-256 Merkle
root, and verifies single chunks against that root with short proofs.
"""

from .chunking import ChunkPlan, plan
from .cid import content_address
from .errors import DecodeError, InvalidInput, StoreError, TrustlessFSError
from .merkle import FileMerkleTree, build, verify, verify_chunk
from .server import FileServer, MemoryStore

__version__ = "0.1.0"

__all__ = [
    "ChunkPlan",
    "DecodeError",
    "FileMerkleTree",
    "FileServer",
    "InvalidInput",
    "MemoryStore",
    "StoreError",
    "TrustlessFSError",
    "build",
    "content_address",
    "plan",
    "verify",
    "verify_chunk",
]
