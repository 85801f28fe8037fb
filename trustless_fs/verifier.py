"""
Trustless File Server — Chunk Verifier

CLI tool to verify that a chunk belongs to a published file by
validating its Merkle proof against the stored root.

Usage:
    tfs-verify --root <hex> --position 3 --chunk chunk3.bin

Output:
    [+] Verified: chunk 3 belongs to file 0x18d35a4d...
    Proof size: 165 bytes
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from .builder import proof_path, record_path
from .cid import content_address
from .config import DATA_DIR
from .errors import DecodeError, TrustlessFSError
from .merkle import FileMerkleTree, hash_leaf, parse_proof_bytes, root_from_hex, verify_chunk


def load_record(data_dir: Path, root: bytes) -> FileMerkleTree:
    """
    Load the persisted tree of a file.

    Raises:
        FileNotFoundError: If no record exists for this root
        DecodeError: If the record is malformed or belongs to another root
    """
    record_file = record_path(data_dir, root)
    if not record_file.exists():
        raise FileNotFoundError(
            f"Record not found: {record_file}\n"
            "Run tfs-build first to publish the file."
        )

    tree = FileMerkleTree.decode(record_file.read_bytes())
    if tree.merkle_root() != root:
        raise DecodeError(f"Record {record_file} has root 0x{tree.merkle_root().hex()}")
    return tree


def load_proof(data_dir: Path, root: bytes, position: int) -> Tuple[bytes, int, List[bytes], int]:
    """
    Load the proof file of a piece.

    Returns:
        Tuple of (leaf_hash, position, proof, file_size_in_bytes)

    Raises:
        FileNotFoundError: If the proof file doesn't exist
        DecodeError: If the proof file is malformed
    """
    proof_file = proof_path(data_dir, root, position)
    if not proof_file.exists():
        raise FileNotFoundError(
            f"Proof file not found: {proof_file}\n"
            f"Piece {position} may not exist in this file."
        )

    proof_data = proof_file.read_bytes()

    # - 32 bytes: leaf hash
    # - 4 bytes: position (big-endian)
    # - N bytes: proof data
    if len(proof_data) < 37:
        raise DecodeError(f"Invalid proof file: too short ({len(proof_data)} bytes)")

    leaf_hash = proof_data[:32]
    stored_position = int.from_bytes(proof_data[32:36], "big")
    proof = parse_proof_bytes(proof_data[36:])

    return leaf_hash, stored_position, proof, len(proof_data)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Verify a file chunk against a published Merkle root",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tfs-verify --root 18d35a4d... --position 0 --chunk piece0.bin
        """,
    )
    parser.add_argument("--root", "-r", required=True, type=root_from_hex, help="Merkle root (hex)")
    parser.add_argument("--position", "-p", required=True, type=int, help="Piece index")
    parser.add_argument("--chunk", "-c", required=True, type=Path, help="Chunk bytes to verify")
    parser.add_argument(
        "--data-dir", "-d",
        type=Path,
        default=DATA_DIR,
        help=f"Directory written by tfs-build (default: {DATA_DIR})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed verification info",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    print("\n" + "=" * 60)
    print("Trustless File Server - Chunk Verifier")
    print("=" * 60 + "\n")

    try:
        start_time = time.perf_counter()

        if args.verbose:
            print("[*] Loading record...")
        tree = load_record(args.data_dir, args.root)

        if args.verbose:
            print(f"[*] Loading proof for piece {args.position}...")
        leaf_hash, stored_position, proof, proof_size = load_proof(
            args.data_dir, args.root, args.position
        )
        if stored_position != args.position:
            raise DecodeError(
                f"Proof file is for piece {stored_position}, not {args.position}"
            )

        chunk = args.chunk.read_bytes()

        if args.verbose:
            print("[*] Verifying Merkle proof...")
        is_valid = verify_chunk(chunk, args.position, proof, args.root, tree.file_size)

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        print()
        if is_valid:
            print(f"[+] Verified: chunk {args.position} belongs to file 0x{args.root.hex()[:16]}...")
        else:
            print(f"[-] Failed: chunk {args.position} NOT verified against 0x{args.root.hex()[:16]}...")

        print(f"   Proof size: {proof_size} bytes")
        print(f"   Verification time: {elapsed_ms:.1f} ms")

        if args.verbose:
            print("\n   Details:")
            print(f"   Root: 0x{args.root.hex()}")
            print(f"   Tree leaf: 0x{leaf_hash.hex()}")
            print(f"   Content address: {content_address(hash_leaf(chunk))}")
            print(f"   Proof path length: {len(proof)} nodes")

        print()

        return 0 if is_valid else 1

    except (OSError, TrustlessFSError) as e:
        print(f"[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
