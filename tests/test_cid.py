import hashlib

import pytest

from trustless_fs.cid import content_address
from trustless_fs.errors import InvalidInput


def test_known_raw_cid():
    digest = hashlib.sha256(b"hello world").digest()
    assert content_address(digest) == "bafkreifzjut3te2nhyekklss27nh3k72ysco7y32koao5eei66wof36n5e"


def test_address_shape():
    address = content_address(bytes(32))
    assert address.startswith("bafkrei")
    assert len(address) == 59
    assert address == address.lower()
    assert "=" not in address


def test_address_is_stable_and_injective():
    digests = [hashlib.sha256(bytes([i])).digest() for i in range(256)]
    addresses = [content_address(d) for d in digests]
    assert addresses == [content_address(d) for d in digests]
    assert len(set(addresses)) == len(digests)


@pytest.mark.parametrize("digest", [b"", bytes(31), bytes(33)])
def test_rejects_wrong_digest_length(digest):
    with pytest.raises(InvalidInput):
        content_address(digest)

