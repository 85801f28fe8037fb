import pytest

from trustless_fs import rpc
from trustless_fs.cid import content_address
from trustless_fs.server import FileServer


@pytest.fixture
def server(boundary_file):
    server = FileServer()
    server.upload_file(boundary_file)
    return server


def test_get_files_hex(server):
    root, pieces = server.list_files()[0]
    assert rpc.get_files(server) == [{"hash": root.hex(), "pieces": pieces}]


def test_get_proof_hex(server):
    root, _ = server.list_files()[0]
    result = rpc.get_proof(server, root.hex(), 1)

    tree = server.get_file(root)
    assert result["content"] == content_address(tree.chunk_hash_at(1))
    assert result["proof"] == [h.hex() for h in tree.proof_for(1)]


def test_get_proof_accepts_0x_prefix(server):
    root, _ = server.list_files()[0]
    assert rpc.get_proof(server, "0x" + root.hex(), 0) == rpc.get_proof(server, root.hex(), 0)


def test_get_proof_errors(server):
    root, pieces = server.list_files()[0]
    with pytest.raises(rpc.RpcError) as excinfo:
        rpc.get_proof(server, root.hex(), pieces)
    assert excinfo.value.to_dict() == {
        "code": 1,
        "message": "Runtime error",
        "data": "Failure getting the merkle proof",
    }

    with pytest.raises(rpc.RpcError):
        rpc.get_proof(server, "not-hex", 0)


def test_get_file_info(server):
    root, _ = server.list_files()[0]
    assert rpc.get_file_info(server, root.hex()) == {
        "hash": root.hex(),
        "file_size": 3000,
        "chunk_size": 1024,
        "pieces": 3,
        "has_boundary": True,
    }
    with pytest.raises(rpc.RpcError):
        rpc.get_file_info(server, "00" * 32)
