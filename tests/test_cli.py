import pytest
import responses

from conftest import make_bytes
from trustless_fs import builder, verifier
from trustless_fs.merkle import build, parse_proof_bytes


@pytest.fixture
def published(tmp_path):
    data = make_bytes(3000)
    source = tmp_path / "file.bin"
    source.write_bytes(data)
    data_dir = tmp_path / "data"
    assert builder.main([str(source), "--data-dir", str(data_dir)]) == 0
    return data, data_dir, build(data)


def write_chunk(tmp_path, data):
    path = tmp_path / "chunk.bin"
    path.write_bytes(data)
    return str(path)


def test_build_writes_record_and_proofs(published):
    data, data_dir, tree = published
    root = tree.merkle_root()

    record = builder.record_path(data_dir, root)
    assert record.read_bytes() == tree.encode()

    for position in range(tree.pieces):
        proof_data = builder.proof_path(data_dir, root, position).read_bytes()
        assert proof_data[:32] == tree.leaf_hash_at(position)
        assert int.from_bytes(proof_data[32:36], "big") == position
        assert parse_proof_bytes(proof_data[36:]) == tree.proof_for(position)


def test_build_missing_file(tmp_path, capsys):
    assert builder.main([str(tmp_path / "missing.bin"), "--data-dir", str(tmp_path)]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_build_empty_file(tmp_path, capsys):
    source = tmp_path / "empty.bin"
    source.write_bytes(b"")
    assert builder.main([str(source), "--data-dir", str(tmp_path)]) == 1
    assert "empty file" in capsys.readouterr().out


def test_build_with_upload(tmp_path):
    source = tmp_path / "file.bin"
    source.write_bytes(make_bytes(2500))
    with responses.RequestsMock() as mock:
        mock.add(responses.POST, "http://ipfs.test/api/v0/block/put", json={})
        code = builder.main([
            str(source),
            "--data-dir", str(tmp_path / "data"),
            "--upload",
            "--ipfs-url", "http://ipfs.test",
        ])
        assert code == 0
        assert len(mock.calls) == 3


def test_verify_every_chunk(published, tmp_path, capsys):
    data, data_dir, tree = published
    root_hex = tree.merkle_root().hex()
    for position in range(tree.pieces):
        chunk = data[position * tree.chunk_size:(position + 1) * tree.chunk_size]
        code = verifier.main([
            "--root", root_hex,
            "--position", str(position),
            "--chunk", write_chunk(tmp_path, chunk),
            "--data-dir", str(data_dir),
            "--verbose",
        ])
        assert code == 0
    assert "[+] Verified" in capsys.readouterr().out


def test_verify_tampered_chunk(published, tmp_path, capsys):
    data, data_dir, tree = published
    chunk = bytearray(data[:tree.chunk_size])
    chunk[0] ^= 0xFF
    code = verifier.main([
        "--root", "0x" + tree.merkle_root().hex(),
        "--position", "0",
        "--chunk", write_chunk(tmp_path, bytes(chunk)),
        "--data-dir", str(data_dir),
    ])
    assert code == 1
    assert "[-] Failed" in capsys.readouterr().out


def test_verify_unknown_position(published, tmp_path, capsys):
    data, data_dir, tree = published
    code = verifier.main([
        "--root", tree.merkle_root().hex(),
        "--position", str(tree.pieces),
        "--chunk", write_chunk(tmp_path, data[:10]),
        "--data-dir", str(data_dir),
    ])
    assert code == 1
    assert "Proof file not found" in capsys.readouterr().out


def test_verify_unknown_root(published, tmp_path, capsys):
    data, data_dir, _ = published
    code = verifier.main([
        "--root", "00" * 32,
        "--position", "0",
        "--chunk", write_chunk(tmp_path, data[:1024]),
        "--data-dir", str(data_dir),
    ])
    assert code == 1
    assert "Record not found" in capsys.readouterr().out


def test_verify_corrupt_proof_file(published, tmp_path, capsys):
    data, data_dir, tree = published
    root = tree.merkle_root()
    proof_file = builder.proof_path(data_dir, root, 0)
    proof_file.write_bytes(proof_file.read_bytes()[:-5])
    code = verifier.main([
        "--root", root.hex(),
        "--position", "0",
        "--chunk", write_chunk(tmp_path, data[:1024]),
        "--data-dir", str(data_dir),
    ])
    assert code == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_verify_rejects_malformed_root(published, tmp_path):
    data, data_dir, _ = published
    with pytest.raises(SystemExit) as excinfo:
        verifier.main([
            "--root", "0x1234",
            "--position", "0",
            "--chunk", write_chunk(tmp_path, data[:1024]),
            "--data-dir", str(data_dir),
        ])
    assert excinfo.value.code == 2
