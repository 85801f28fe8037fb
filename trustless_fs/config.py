"""
Trustless File Server — Configuration and Constants

Tree layout constants are fixed by the persisted record format.
Object store and output locations are read from the environment.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# =============================================================================
# MERKLE TREE LAYOUT
# =============================================================================

HASH_SIZE = 32  # SHA-256 digest length in bytes

MIN_CHUNK_SIZE = 1024  # Chunks are never smaller than 1 KiB
TARGET_PIECES = 64     # Chunk size is chosen to split files into ~64 pieces
MAX_PIECES = 64        # Leaf budget of the tree (127 nodes at most)

# Filler leaf used to pad the leaf level to a power of two
CHUNK_FILLER = bytes(HASH_SIZE)

# file_size is persisted as a little-endian u32
FILE_SIZE_BYTES = 4
MAX_FILE_SIZE = 2 ** 32 - 1

# =============================================================================
# CONTENT ADDRESSING (CIDv1)
# =============================================================================

# <cid-version=1><multicodec=raw><multihash=sha2-256><digest-length=32>
CID_PREFIX = bytes([0x01, 0x55, 0x12, 0x20])

# Multibase tag for lowercase, unpadded RFC 4648 base32
MULTIBASE_BASE32 = "b"

# =============================================================================
# OBJECT STORE (IPFS HTTP API)
# =============================================================================

IPFS_NODE_URL = os.getenv("IPFS_NODE_URL", "http://127.0.0.1:5001").rstrip("/")
IPFS_TIMEOUT = float(os.getenv("IPFS_TIMEOUT", "30"))

# =============================================================================
# OUTPUT PATHS
# =============================================================================

DATA_DIR = Path(os.getenv("TFS_DATA_DIR", "tfs_data"))
RECORDS_DIR = DATA_DIR / "records"
PROOFS_DIR = DATA_DIR / "proofs"
