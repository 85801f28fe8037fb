"""
Trustless File Server — IPFS Object Store Client

Uploads raw chunk bytes to an IPFS node through its HTTP API.
Chunks are stored as raw blocks, so the node addresses each one by the
same CIDv1 that content_address() derives from the chunk hash.
"""

import logging
from typing import Optional

import requests

from .cid import content_address
from .config import IPFS_NODE_URL, IPFS_TIMEOUT
from .errors import StoreError
from .merkle import hash_leaf

logger = logging.getLogger(__name__)

BLOCK_PUT_PATH = "/api/v0/block/put"


class IpfsClient:
    """Minimal client for the `block/put` endpoint of an IPFS node."""

    def __init__(
        self,
        base_url: str = IPFS_NODE_URL,
        timeout: float = IPFS_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def block_put(self, data: bytes) -> str:
        """
        Store one raw chunk.

        Args:
            data: Chunk bytes exactly as they should be served (unpadded)

        Returns:
            Content address of the stored block

        Raises:
            StoreError: If the node cannot be reached, answers with a
                non-200 status, or reports a different address
        """
        expected = content_address(hash_leaf(data))
        url = self.base_url + BLOCK_PUT_PATH

        try:
            response = self.session.post(
                url,
                params={"cid-codec": "raw", "mhtype": "sha2-256"},
                files={"file": ("chunk", data, "application/octet-stream")},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreError(f"Failed to upload chunk {expected}: {e}") from e

        if response.status_code != 200:
            logger.warning(
                "Unexpected status code: %s.\n%s", response.status_code, response.text
            )
            raise StoreError(
                f"IPFS node rejected chunk {expected} with status {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            raise StoreError(f"Unexpected reply from IPFS node for chunk {expected}: {payload!r}")

        key = payload.get("Key")
        if key is not None and key != expected:
            raise StoreError(f"IPFS node stored chunk as {key}, expected {expected}")

        logger.info("Chunk successfully uploaded: %s (%d bytes)", expected, len(data))
        return expected
