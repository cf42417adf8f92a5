from __future__ import annotations

import hashlib
from pathlib import Path

from nginx_buildpack.core import hashing


def test_file_digest_streams_in_chunks(tmp_path: Path) -> None:
    payload = b"nginx-1.7.9" * 1000
    p = tmp_path / "archive.tar.gz"
    p.write_bytes(payload)

    d = hashing.FileDigest.of(p, chunk_bytes=7)
    assert d.bytes == len(payload)
    assert d.sha256 == hashlib.sha256(payload).hexdigest()
    assert hashing.FileDigest.of(p) == d


def test_file_digest_empty_file(tmp_path: Path) -> None:
    p = tmp_path / "empty"
    p.write_bytes(b"")
    assert hashing.FileDigest.of(p).bytes == 0


def test_values_digest_separates_boundaries() -> None:
    a = hashing.values_digest(["a b", ""])
    b = hashing.values_digest(["a", "b "])
    assert a != b
    assert len(a) == 16
    assert hashing.values_digest(("1.7.9", "8.36", "")) == hashing.values_digest(
        ["1.7.9", "8.36", ""]
    )
    assert len(hashing.values_digest(["x"], length=8)) == 8
