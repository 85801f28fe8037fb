"""
Trustless File Server — File Server Facade

Stores one encoded FileMerkleTree per uploaded file in a key-value
store, keyed by Merkle root, and answers listing and proof queries.
Raw chunks are queued for distribution to an object store.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from .cid import content_address
from .chunking import iter_chunks
from .config import HASH_SIZE
from .merkle import FileMerkleTree

logger = logging.getLogger(__name__)

FILES_PREFIX = b"files/"
OWNERS_PREFIX = b"owners/"


class KeyValueStore(Protocol):
    """Storage the server persists records into."""

    def get(self, key: bytes) -> Optional[bytes]:
        ...

    def insert(self, key: bytes, value: bytes) -> None:
        ...

    def items(self) -> Iterator[Tuple[bytes, bytes]]:
        ...


class MemoryStore:
    """Dict-backed KeyValueStore, safe to share between threads."""

    def __init__(self):
        self._data: Dict[bytes, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def insert(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def items(self) -> Iterator[Tuple[bytes, bytes]]:
        with self._lock:
            snapshot = list(self._data.items())
        return iter(snapshot)

    def __len__(self):
        with self._lock:
            return len(self._data)


@dataclass(frozen=True)
class UploadReceipt:
    """Outcome of an upload, what a ledger would announce."""

    merkle_root: bytes
    pieces: int
    file_size: int
    owner: Optional[str] = None


class FileServer:
    """
    Trustless file server over a key-value store.

    Clients obtain a chunk's content address plus its Merkle proof and
    check the chunk against the root on their own.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else MemoryStore()
        self._pending: List[bytes] = []
        self._pending_lock = threading.Lock()

    def upload_file(self, file_bytes: bytes, owner: Optional[str] = None) -> UploadReceipt:
        """
        Build the Merkle tree of a file and persist it under its root.

        Raises:
            InvalidInput: If the file is empty or too large
        """
        tree = FileMerkleTree.build(file_bytes)
        root = tree.merkle_root()

        self.store.insert(FILES_PREFIX + root, tree.encode())
        if owner is not None:
            self.store.insert(OWNERS_PREFIX + root, owner.encode("utf-8"))

        with self._pending_lock:
            self._pending.extend(iter_chunks(file_bytes, tree.chunk_size))

        logger.info(
            "File uploaded: root=%s pieces=%d size=%d",
            root.hex(), tree.pieces, tree.file_size,
        )
        return UploadReceipt(
            merkle_root=root,
            pieces=tree.pieces,
            file_size=tree.file_size,
            owner=owner,
        )

    def get_file(self, merkle_root: bytes) -> Optional[FileMerkleTree]:
        """Load the tree stored under `merkle_root`, if any."""
        if len(merkle_root) != HASH_SIZE:
            return None
        record = self.store.get(FILES_PREFIX + bytes(merkle_root))
        if record is None:
            return None
        return FileMerkleTree.decode(record)

    def file_owner(self, merkle_root: bytes) -> Optional[str]:
        owner = self.store.get(OWNERS_PREFIX + bytes(merkle_root))
        return owner.decode("utf-8") if owner is not None else None

    def list_files(self) -> List[Tuple[bytes, int]]:
        """All stored files as (merkle_root, pieces) pairs."""
        files = []
        for key, record in self.store.items():
            if not key.startswith(FILES_PREFIX):
                continue
            tree = FileMerkleTree.decode(record)
            files.append((tree.merkle_root(), tree.pieces))
        return files

    def get_proof(self, merkle_root: bytes, position: int) -> Optional[Tuple[str, List[bytes]]]:
        """
        Content address and Merkle proof of one chunk.

        Returns:
            (content_address, proof) or None if the file is unknown or
            the position is out of range
        """
        tree = self.get_file(merkle_root)
        if tree is None:
            return None
        proof = tree.proof_for(position)
        if proof is None:
            return None
        return content_address(tree.chunk_hash_at(position)), proof

    def pending_chunks(self) -> List[bytes]:
        """Chunks waiting to be pushed to the object store."""
        with self._pending_lock:
            return list(self._pending)

    def distribute(self, client) -> List[str]:
        """
        Push queued chunks to an object store client.

        Args:
            client: Object with a `block_put(data) -> str` method

        Returns:
            Content addresses of the chunks uploaded by this call

        Raises:
            StoreError: On the first failed upload. Whatever the client
                raises, that chunk and the ones after it stay queued
        """
        with self._pending_lock:
            queue, self._pending = self._pending, []

        uploaded = []
        for index, chunk in enumerate(queue):
            try:
                uploaded.append(client.block_put(chunk))
            except Exception:
                with self._pending_lock:
                    self._pending[:0] = queue[index:]
                raise

        logger.info("Distributed %d chunks", len(uploaded))
        return uploaded
