"""
Trustless File Server — File Merkle Tree

A balanced binary SHA-256 Merkle tree over the chunks of one file,
stored as a flat buffer of 32-byte nodes in level order:

    [leaf 0 .. leaf n-1][level 1] ... [root]

The leaf level is padded with zero hashes up to a power of two, so a
tree over n pieces always holds 2 * next_power_of_two(n) - 1 nodes.
"""

import hashlib
import hmac
import logging
from typing import List, Optional, Sequence

from .chunking import (
    ChunkPlan,
    check_plan,
    iter_chunks,
    next_power_of_two,
    pad_chunk,
    plan,
)
from .config import CHUNK_FILLER, FILE_SIZE_BYTES, HASH_SIZE, MAX_PIECES
from .errors import DecodeError, InvalidInput

logger = logging.getLogger(__name__)


def hash_leaf(data: bytes) -> bytes:
    """Hash leaf data with SHA-256."""
    return hashlib.sha256(data).digest()


def hash_pair(left: bytes, right: bytes) -> bytes:
    """Parent = H(left || right)."""
    return hashlib.sha256(left + right).digest()


def tree_length(pieces: int) -> int:
    """Byte length of the flat tree buffer for a file of `pieces` pieces."""
    return HASH_SIZE * (2 * next_power_of_two(pieces) - 1)


class FileMerkleTree:
    """
    Immutable Merkle commitment to a single file.

    Properties:
        - Deterministic: same bytes → same root
        - Proof generation: O(log n) sibling path, root excluded
        - The boundary (last, shorter) chunk is zero-padded before it is
          hashed into the tree; its unpadded hash is kept separately as
          `boundary_hash`, the address of the bytes actually stored.
    """

    __slots__ = ("_file_size", "_merkle_tree", "_boundary_hash", "_plan")

    def __init__(
        self,
        file_size: int,
        merkle_tree: bytes,
        boundary_hash: Optional[bytes] = None,
    ):
        """
        Wrap an already computed tree buffer.

        Args:
            file_size: Length of the original file in bytes
            merkle_tree: Level-ordered node buffer
            boundary_hash: SHA-256 of the unpadded last chunk, required iff
                the file size is not a multiple of the chunk size

        Raises:
            InvalidInput: If the buffer or boundary hash does not match
                the layout implied by file_size
        """
        chunk_plan = plan(file_size)
        check_plan(chunk_plan)

        expected = tree_length(chunk_plan.pieces)
        if len(merkle_tree) != expected:
            raise InvalidInput(
                f"Tree buffer is {len(merkle_tree)} bytes, expected {expected}"
            )
        if chunk_plan.has_boundary:
            if boundary_hash is None or len(boundary_hash) != HASH_SIZE:
                raise InvalidInput("A 32-byte boundary hash is required for this file size")
        elif boundary_hash is not None:
            raise InvalidInput("File size is a multiple of the chunk size, no boundary hash allowed")

        self._file_size = file_size
        self._merkle_tree = bytes(merkle_tree)
        self._boundary_hash = bytes(boundary_hash) if boundary_hash is not None else None
        self._plan = chunk_plan

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(cls, file_bytes: bytes) -> "FileMerkleTree":
        """
        Build the whole tree from raw file contents.

        Raises:
            InvalidInput: If the file is empty or needs too many pieces
        """
        chunk_plan = plan(len(file_bytes))
        check_plan(chunk_plan)

        leaves: List[bytes] = []
        boundary_hash = None
        for chunk in iter_chunks(file_bytes, chunk_plan.chunk_size):
            if len(chunk) != chunk_plan.chunk_size:
                # Only the last chunk can be short
                boundary_hash = hash_leaf(chunk)
                chunk = pad_chunk(chunk, chunk_plan.chunk_size)
            leaves.append(hash_leaf(chunk))

        # Make the tree a totally balanced binary tree
        width = next_power_of_two(chunk_plan.pieces)
        leaves.extend([CHUNK_FILLER] * (width - len(leaves)))

        nodes = list(leaves)
        current_layer = leaves
        while len(current_layer) > 1:
            current_layer = [
                hash_pair(current_layer[i], current_layer[i + 1])
                for i in range(0, len(current_layer), 2)
            ]
            nodes.extend(current_layer)

        logger.debug(
            "Built tree: size=%d chunk_size=%d pieces=%d leaves=%d",
            chunk_plan.file_size, chunk_plan.chunk_size, chunk_plan.pieces, width,
        )
        return cls(chunk_plan.file_size, b"".join(nodes), boundary_hash)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def file_size(self) -> int:
        return self._file_size

    @property
    def merkle_tree(self) -> bytes:
        return self._merkle_tree

    @property
    def boundary_hash(self) -> Optional[bytes]:
        return self._boundary_hash

    @property
    def chunk_plan(self) -> ChunkPlan:
        return self._plan

    @property
    def chunk_size(self) -> int:
        return self._plan.chunk_size

    @property
    def pieces(self) -> int:
        return self._plan.pieces

    @property
    def has_boundary(self) -> bool:
        return self._plan.has_boundary

    @property
    def leaf_count(self) -> int:
        """Number of leaves including zero fillers."""
        return next_power_of_two(self.pieces)

    def merkle_root(self) -> bytes:
        """The root is stored as the last 32 bytes of the tree buffer."""
        return self._merkle_tree[-HASH_SIZE:]

    def _node(self, index: int) -> bytes:
        start = index * HASH_SIZE
        return self._merkle_tree[start:start + HASH_SIZE]

    def leaf_hash_at(self, position: int) -> Optional[bytes]:
        """Tree leaf value at `position` (padded hash for the boundary piece)."""
        if position < 0 or position >= self.pieces:
            return None
        return self._node(position)

    def chunk_hash_at(self, position: int) -> Optional[bytes]:
        """
        Content hash of the chunk at `position`.

        For the boundary piece this is the hash of the unpadded bytes,
        which differs from the tree leaf. Returns None when out of range.
        """
        if position < 0 or position >= self.pieces:
            return None
        if self.has_boundary and position == self.pieces - 1:
            return self._boundary_hash
        return self._node(position)

    # -------------------------------------------------------------------------
    # Proofs
    # -------------------------------------------------------------------------

    def proof_for(self, position: int) -> Optional[List[bytes]]:
        """
        Generate the sibling path for the leaf at `position`.

        Args:
            position: 0-based piece index

        Returns:
            Sibling hashes ordered from the leaf level upwards, root
            excluded; None if position is not a piece of this file
        """
        if position < 0 or position >= self.pieces:
            return None

        proof = []
        index = position
        offset = 0  # Index of the first node of the current level
        width = self.leaf_count

        while width > 1:
            sibling = index + 1 if index % 2 == 0 else index - 1
            proof.append(self._node(offset + sibling))

            # Move to parent index
            offset += width
            index //= 2
            width //= 2

        return proof

    # -------------------------------------------------------------------------
    # Persisted record
    # -------------------------------------------------------------------------

    def encode(self) -> bytes:
        """
        Serialize to the persisted record layout.

        Format:
            - 4 bytes: file_size (little-endian)
            - 32 bytes: boundary hash, only if the file has a boundary chunk
            - N bytes: merkle tree buffer
        """
        result = self._file_size.to_bytes(FILE_SIZE_BYTES, "little")
        if self._boundary_hash is not None:
            result += self._boundary_hash
        return result + self._merkle_tree

    @classmethod
    def decode(cls, data: bytes) -> "FileMerkleTree":
        """
        Parse a persisted record produced by encode().

        Raises:
            DecodeError: If the record is truncated, oversized or describes
                an impossible tree
        """
        if len(data) < FILE_SIZE_BYTES:
            raise DecodeError(f"Record too short: {len(data)} bytes")

        file_size = int.from_bytes(data[:FILE_SIZE_BYTES], "little")
        chunk_plan = plan(file_size)
        if chunk_plan.pieces == 0 or chunk_plan.pieces > MAX_PIECES:
            raise DecodeError(f"Record declares an unsupported file size: {file_size}")

        offset = FILE_SIZE_BYTES
        boundary_hash = None
        if chunk_plan.has_boundary:
            if len(data) < offset + HASH_SIZE:
                raise DecodeError("Record truncated: missing boundary hash")
            boundary_hash = data[offset:offset + HASH_SIZE]
            offset += HASH_SIZE

        merkle_tree = data[offset:]
        expected = tree_length(chunk_plan.pieces)
        if len(merkle_tree) != expected:
            raise DecodeError(
                f"Tree buffer is {len(merkle_tree)} bytes, expected {expected}"
            )

        return cls(file_size, merkle_tree, boundary_hash)

    def __eq__(self, other):
        if not isinstance(other, FileMerkleTree):
            return NotImplemented
        return (
            self._file_size == other._file_size
            and self._boundary_hash == other._boundary_hash
            and self._merkle_tree == other._merkle_tree
        )

    def __hash__(self):
        return hash((self._file_size, self._boundary_hash, self._merkle_tree))

    def __repr__(self):
        return (
            f"FileMerkleTree(file_size={self._file_size}, pieces={self.pieces}, "
            f"root=0x{self.merkle_root().hex()[:16]}...)"
        )


def build(file_bytes: bytes) -> FileMerkleTree:
    """Build a FileMerkleTree from raw file contents."""
    return FileMerkleTree.build(file_bytes)


def verify(
    leaf_hash: bytes,
    position: int,
    proof: Sequence[bytes],
    expected_root: bytes,
) -> bool:
    """
    Verify a Merkle proof.

    Left/right placement at each level comes from the parity of the
    current index. Every proof entry is hashed even after a mismatch
    becomes certain; the final comparison is constant time.

    Args:
        leaf_hash: Tree leaf value for the piece being verified
        position: 0-based piece index
        proof: Sibling hashes ordered bottom-up, as from proof_for()
        expected_root: The trusted Merkle root

    Returns:
        True if the proof leads to expected_root, False otherwise
    """
    if position < 0 or len(leaf_hash) != HASH_SIZE or len(expected_root) != HASH_SIZE:
        return False

    well_formed = True
    current = bytes(leaf_hash)
    index = position

    for sibling_hash in proof:
        if len(sibling_hash) != HASH_SIZE:
            well_formed = False
        if index % 2 == 0:
            current = hash_pair(current, sibling_hash)
        else:
            current = hash_pair(sibling_hash, current)
        index //= 2

    # Leftover index bits mean position lies outside the proven tree
    matches = hmac.compare_digest(current, bytes(expected_root))
    return matches and well_formed and index == 0


def verify_chunk(
    chunk: bytes,
    position: int,
    proof: Sequence[bytes],
    expected_root: bytes,
    file_size: int,
) -> bool:
    """
    Verify raw chunk bytes as served by the object store.

    The boundary chunk is stored unpadded, so it is zero-padded to the
    chunk size before hashing, exactly as the tree builder did.
    """
    chunk_plan = plan(file_size)
    if position < 0 or position >= chunk_plan.pieces:
        return False
    if len(chunk) > chunk_plan.chunk_size:
        return False

    is_last = position == chunk_plan.pieces - 1
    expected_len = chunk_plan.boundary_size if is_last else chunk_plan.chunk_size
    if len(chunk) != expected_len:
        return False

    if len(chunk) < chunk_plan.chunk_size:
        chunk = pad_chunk(chunk, chunk_plan.chunk_size)
    return verify(hash_leaf(chunk), position, proof, expected_root)


def get_proof_bytes(proof: Sequence[bytes]) -> bytes:
    """
    Encode a proof in compact binary form.

    Format:
        - 1 byte: number of proof elements
        - For each element: 32 bytes hash

    Direction is not stored; it follows from the leaf position.
    """
    if len(proof) > 255:
        raise InvalidInput(f"Proof too long: {len(proof)} elements")
    return bytes([len(proof)]) + b"".join(proof)


def parse_proof_bytes(proof_bytes: bytes) -> List[bytes]:
    """
    Parse binary proof format back to a list of hashes.

    Raises:
        DecodeError: If the data is empty or its length does not match
            the declared element count
    """
    if not proof_bytes:
        raise DecodeError("Empty proof data")

    num_elements = proof_bytes[0]
    expected = 1 + num_elements * HASH_SIZE
    if len(proof_bytes) != expected:
        raise DecodeError(
            f"Proof declares {num_elements} elements ({expected} bytes), got {len(proof_bytes)} bytes"
        )

    return [
        proof_bytes[offset:offset + HASH_SIZE]
        for offset in range(1, expected, HASH_SIZE)
    ]


def root_from_hex(value: str) -> bytes:
    """
    Parse a hex Merkle root, with or without a `0x` prefix.

    Raises:
        DecodeError: If the value is not hex or not 32 bytes long
    """
    hex_root = value[2:] if value.startswith("0x") else value
    try:
        root = bytes.fromhex(hex_root)
    except ValueError as e:
        raise DecodeError(f"Invalid merkle root {value!r}: {e}") from e
    if len(root) != HASH_SIZE:
        raise DecodeError(f"Merkle root must be {HASH_SIZE} bytes, got {len(root)}")
    return root
