from __future__ import annotations

import tarfile
from pathlib import Path

import structlog
from nginx_buildpack.core import FetchFailure

log = structlog.get_logger(__name__)


def extract_tarball(archive: Path, dest_dir: Path, *, expect_dir: str) -> Path:
    """
    Unpack `archive` into `dest_dir` and return `dest_dir / expect_dir`.

    A truncated or corrupt archive (the usual symptom of a partial download)
    or a tarball without the expected top-level directory is a FetchFailure.
    """
    archive = Path(archive)
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)

    try:
        with tarfile.open(archive) as tf:
            tf.extractall(dest_dir, filter="data")
    except (tarfile.TarError, EOFError, OSError) as e:
        raise FetchFailure(f"Failed to extract {archive.name}: {e}") from e

    root = dest_dir / expect_dir
    if not root.is_dir():
        raise FetchFailure(
            f"{archive.name} did not contain the expected directory {expect_dir}/"
        )

    log.debug("archive.extracted", archive=archive.name, root=str(root))
    return root
