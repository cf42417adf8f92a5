"""Persist the compiled binary and its fingerprint across builds."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog
from nginx_buildpack.core import (
    BuildLayout,
    CacheIOFailure,
    copy_file,
    copy_tree,
    remove_tree,
)
from nginx_buildpack.resolve import PackageSpec

from .fingerprint import Fingerprint, read_metadata

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CachedArtifact:
    fingerprint: Fingerprint
    binary_path: Path
    metadata_files: tuple[Path, ...]


class ArtifactCache:
    """
    Owns `<cache>/<package>/`. Every filesystem error is fatal: a half
    copied binary must never be treated as runnable.
    """

    def __init__(self, spec: PackageSpec, layout: BuildLayout) -> None:
        self.spec = spec
        self.layout = layout

    def restore(self) -> CachedArtifact:
        """
        Copy the cached tree into `<build>/vendor/<package>/` and mirror the
        metadata into `<build>/.metadata/`.
        """
        src_entry = self.layout.cache_entry()
        src_meta = self.layout.cache_metadata()
        try:
            if not self.layout.cache_binary().is_file():
                raise CacheIOFailure(
                    f"cached binary missing: {self.layout.cache_binary()}"
                )
            fp = read_metadata(src_meta, self.spec)
            if fp is None:
                raise CacheIOFailure(f"cached metadata incomplete: {src_meta}")

            for child in sorted(src_entry.iterdir()):
                if child.name == src_meta.name:
                    continue
                dst = self.layout.vendor() / child.name
                if child.is_dir() and not child.is_symlink():
                    copy_tree(child, dst)
                else:
                    copy_file(child, dst)

            copy_tree(src_meta, self.layout.build_metadata())
        except CacheIOFailure:
            raise
        except OSError as e:
            raise CacheIOFailure(f"cache restore failed: {e}") from e

        art = self._artifact(fp, self.layout.vendor_binary(), self.layout.build_metadata())
        log.info(
            "cache.restored",
            binary=str(art.binary_path),
            fingerprint=fp.digest(),
        )
        return art

    def store(self) -> CachedArtifact:
        """
        Copy the freshly built vendor tree and metadata files into the cache.
        The caller has already purged any previous entry.
        """
        vendor = self.layout.vendor()
        meta = self.layout.build_metadata()
        try:
            if not self.layout.vendor_binary().is_file():
                raise CacheIOFailure(
                    f"built binary missing: {self.layout.vendor_binary()}"
                )
            fp = read_metadata(meta, self.spec)
            if fp is None:
                raise CacheIOFailure(f"build metadata incomplete: {meta}")

            copy_tree(vendor, self.layout.cache_entry())
            dst_meta = self.layout.cache_metadata()
            dst_meta.mkdir(parents=True, exist_ok=True)
            for name in self.spec.metadata_names():
                copy_file(meta / name, dst_meta / name)
        except CacheIOFailure:
            raise
        except OSError as e:
            raise CacheIOFailure(f"cache store failed: {e}") from e

        art = self._artifact(fp, self.layout.cache_binary(), self.layout.cache_metadata())
        log.info("cache.stored", binary=str(art.binary_path), fingerprint=fp.digest())
        return art

    def purge(self) -> bool:
        entry = self.layout.cache_entry()
        try:
            removed = remove_tree(entry)
        except OSError as e:
            raise CacheIOFailure(f"cache purge failed for {entry}: {e}") from e
        log.info("cache.purged", path=str(entry), removed=removed)
        return removed

    def _artifact(
        self, fp: Fingerprint, binary: Path, metadata_dir: Path
    ) -> CachedArtifact:
        return CachedArtifact(
            fingerprint=fp,
            binary_path=binary,
            metadata_files=tuple(metadata_dir / n for n in self.spec.metadata_names()),
        )
