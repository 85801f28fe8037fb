"""
Trustless File Server — Content Addressing

Maps a chunk's SHA-256 digest to the CIDv1 string an IPFS node stores
the raw chunk under, e.g. `bafkrei...`.
"""

import base64

from .config import CID_PREFIX, HASH_SIZE, MULTIBASE_BASE32
from .errors import InvalidInput


def content_address(digest: bytes) -> str:
    """
    Build the CIDv1 (raw codec, sha2-256) of a 32-byte digest.

    Args:
        digest: SHA-256 digest of the chunk bytes

    Returns:
        Multibase base32 string, lowercase and without padding

    Raises:
        InvalidInput: If digest is not 32 bytes long
    """
    if len(digest) != HASH_SIZE:
        raise InvalidInput(f"Expected a {HASH_SIZE}-byte digest, got {len(digest)} bytes")

    encoded = base64.b32encode(CID_PREFIX + bytes(digest)).decode("ascii")
    return MULTIBASE_BASE32 + encoded.lower().rstrip("=")

