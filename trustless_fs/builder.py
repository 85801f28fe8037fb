"""
Trustless File Server — Tree Builder

Reads a file, builds its Merkle tree, saves the persisted record and
one proof file per piece, and optionally uploads the chunks to IPFS.

Usage:
    tfs-build path/to/file [--upload] [--data-dir DIR]

Outputs:
    - records/<root>.bin: Persisted FileMerkleTree record
    - proofs/<root>_<position>.proof: Binary proof files
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .chunking import iter_chunks
from .config import DATA_DIR, IPFS_NODE_URL
from .errors import TrustlessFSError
from .ipfs import IpfsClient
from .merkle import FileMerkleTree, get_proof_bytes


def load_file(path: Path) -> bytes:
    """
    Read the file to publish.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_bytes()


def record_path(data_dir: Path, root: bytes) -> Path:
    return data_dir / "records" / f"{root.hex()}.bin"


def proof_path(data_dir: Path, root: bytes, position: int) -> Path:
    return data_dir / "proofs" / f"{root.hex()}_{position}.proof"


def save_outputs(tree: FileMerkleTree, data_dir: Path) -> List[Path]:
    """
    Save the tree record and proof files.

    Proof file format:
        - 32 bytes: tree leaf hash
        - 4 bytes: piece position (big-endian)
        - N bytes: proof data (see get_proof_bytes)

    Returns:
        Paths of every file written, record first
    """
    root = tree.merkle_root()

    record_file = record_path(data_dir, root)
    record_file.parent.mkdir(parents=True, exist_ok=True)
    record_file.write_bytes(tree.encode())
    print(f"[+] Saved record to {record_file}")
    print(f"   Root: 0x{root.hex()}")

    written = [record_file]
    for position in range(tree.pieces):
        proof_data = (
            tree.leaf_hash_at(position)
            + position.to_bytes(4, "big")
            + get_proof_bytes(tree.proof_for(position))
        )
        proof_file = proof_path(data_dir, root, position)
        proof_file.parent.mkdir(parents=True, exist_ok=True)
        proof_file.write_bytes(proof_data)
        written.append(proof_file)
        proof_size = len(proof_data)

    print(f"   Proofs: {tree.pieces} files ({proof_size} bytes each)")
    return written


def upload_chunks(file_bytes: bytes, tree: FileMerkleTree, client: IpfsClient) -> List[str]:
    """Upload every raw chunk, boundary chunk unpadded."""
    addresses = []
    for position, chunk in enumerate(iter_chunks(file_bytes, tree.chunk_size)):
        address = client.block_put(chunk)
        print(f"   Chunk {position}: {address}")
        addresses.append(address)
    return addresses


def print_summary(path: Path, tree: FileMerkleTree, elapsed: float) -> None:
    """Print build summary."""
    print("\n" + "=" * 60)
    print("FILE MERKLE TREE - BUILD COMPLETE")
    print("=" * 60)
    print(f"   File:         {path}")
    print(f"   Size:         {tree.file_size} bytes")
    print(f"   Chunk size:   {tree.chunk_size} bytes")
    print(f"   Pieces:       {tree.pieces}")
    print(f"   Boundary:     {'yes' if tree.has_boundary else 'no'}")
    print(f"   Root:         0x{tree.merkle_root().hex()[:16]}...")
    print(f"   Build Time:   {elapsed * 1000:.1f} ms")
    print("=" * 60)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build the Merkle tree of a file and save its proofs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tfs-build image.png
  tfs-build image.png --upload --ipfs-url http://127.0.0.1:5001
        """,
    )
    parser.add_argument("file", type=Path, help="File to publish")
    parser.add_argument(
        "--data-dir", "-d",
        type=Path,
        default=DATA_DIR,
        help=f"Output directory (default: {DATA_DIR})",
    )
    parser.add_argument(
        "--upload", "-u",
        action="store_true",
        help="Upload chunks to the IPFS node",
    )
    parser.add_argument(
        "--ipfs-url",
        default=IPFS_NODE_URL,
        help=f"IPFS HTTP API base URL (default: {IPFS_NODE_URL})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    print("\n" + "=" * 60)
    print("Trustless File Server - Tree Builder")
    print("=" * 60 + "\n")

    start_time = time.perf_counter()

    try:
        # Step 1: Read file
        print(f"[*] Reading {args.file}...")
        file_bytes = load_file(args.file)
        print(f"   Read {len(file_bytes)} bytes")

        # Step 2: Build tree
        print("\n[*] Building file Merkle tree...")
        tree = FileMerkleTree.build(file_bytes)

        # Step 3: Save outputs
        print("\n[*] Saving outputs...")
        save_outputs(tree, args.data_dir)

        # Step 4: Distribute chunks
        if args.upload:
            print(f"\n[*] Uploading chunks to {args.ipfs_url}...")
            upload_chunks(file_bytes, tree, IpfsClient(args.ipfs_url))

        elapsed = time.perf_counter() - start_time
        print_summary(args.file, tree, elapsed)

        return 0

    except (OSError, TrustlessFSError) as e:
        print(f"\n[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
