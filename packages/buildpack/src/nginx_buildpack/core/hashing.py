"""Content digests for downloaded archives, installed binaries and fingerprints."""

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable


@dataclass(frozen=True, slots=True)
class FileDigest:
    sha256: str
    bytes: int

    @classmethod
    def of(cls, path: Path, *, chunk_bytes: int = 1024 * 1024) -> "FileDigest":
        h = hashlib.sha256()
        total = 0
        with Path(path).open("rb") as f:
            for b in iter(lambda: f.read(chunk_bytes), b""):
                h.update(b)
                total += len(b)
        return cls(sha256=h.hexdigest(), bytes=total)


def values_digest(values: Iterable[str], *, length: int = 16) -> str:
    """
    Short id for an ordered sequence of strings.

    Values are JSON encoded first so ("a b", "") and ("a", "b ") differ.
    """
    payload = json.dumps(list(values), ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:length]
