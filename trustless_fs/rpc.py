"""
Trustless File Server — Query API

Hex-encoded query surface in front of a FileServer. Roots and proof
hashes travel as lowercase hex; content addresses are passed through.
"""

from typing import Dict, List

from .errors import DecodeError
from .merkle import root_from_hex
from .server import FileServer

RUNTIME_ERROR = 1


class RpcError(Exception):
    """Error reported to remote callers."""

    def __init__(self, data: str, code: int = RUNTIME_ERROR, message: str = "Runtime error"):
        super().__init__(f"{message}: {data}")
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> Dict:
        return {"code": self.code, "message": self.message, "data": self.data}


def _root_from_hex(merkle_root: str) -> bytes:
    try:
        return root_from_hex(merkle_root)
    except DecodeError as e:
        raise RpcError(str(e)) from e


def get_files(server: FileServer) -> List[Dict]:
    """List stored files as {"hash", "pieces"} items."""
    return [
        {"hash": root.hex(), "pieces": pieces}
        for root, pieces in server.list_files()
    ]


def get_proof(server: FileServer, merkle_root: str, position: int) -> Dict:
    """
    Fetch content address and proof of a chunk.

    Returns:
        {"content": <content address>, "proof": [<hex hash>, ...]}

    Raises:
        RpcError: If the root is not valid hex, the file is unknown or
            the position is out of range
    """
    result = server.get_proof(_root_from_hex(merkle_root), position)
    if result is None:
        raise RpcError("Failure getting the merkle proof")

    content, proof = result
    return {"content": content, "proof": [sibling.hex() for sibling in proof]}


def get_file_info(server: FileServer, merkle_root: str) -> Dict:
    """Sizes a client needs to zero-pad the boundary chunk before verifying."""
    tree = server.get_file(_root_from_hex(merkle_root))
    if tree is None:
        raise RpcError(f"Unknown file {merkle_root}")

    chunk_plan = tree.chunk_plan
    return {
        "hash": tree.merkle_root().hex(),
        "file_size": chunk_plan.file_size,
        "chunk_size": chunk_plan.chunk_size,
        "pieces": chunk_plan.pieces,
        "has_boundary": chunk_plan.has_boundary,
    }
