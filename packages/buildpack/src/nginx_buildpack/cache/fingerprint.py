"""Fingerprint of a build request and the reuse/rebuild decision."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Optional

import structlog
from nginx_buildpack.core import (
    BuildLayout,
    CacheIOFailure,
    atomic_write_text,
    values_digest,
)
from nginx_buildpack.resolve import BuildRequest, PackageSpec

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """
    The literal (version, secondary version, configure options) triple.

    Equality is plain string equality of all three components. Configure
    options are opaque, so no normalization is ever applied.
    """

    package_version: str
    secondary_dependency_version: str
    configure_options: str

    @classmethod
    def from_request(cls, request: BuildRequest) -> "Fingerprint":
        return cls(
            package_version=request.package_version,
            secondary_dependency_version=request.secondary_dependency_version,
            configure_options=request.configure_options,
        )

    def values(self) -> tuple[str, str, str]:
        return (
            self.package_version,
            self.secondary_dependency_version,
            self.configure_options,
        )

    def digest(self) -> str:
        """Stable short id for logs and run reports."""
        return values_digest(self.values())


class CacheAction(StrEnum):
    REUSE = "reuse"
    REBUILD = "rebuild"


@dataclass(frozen=True, slots=True)
class CacheDecision:
    action: CacheAction
    reason: str
    current: Fingerprint
    stored: Optional[Fingerprint] = None

    @property
    def reuse(self) -> bool:
        return self.action is CacheAction.REUSE


def write_metadata(metadata_dir: Path, spec: PackageSpec, fp: Fingerprint) -> list[Path]:
    """
    Write one flat file per fingerprint component, value only, no newline.
    """
    out: list[Path] = []
    for name, value in zip(spec.metadata_names(), fp.values()):
        p = Path(metadata_dir) / name
        atomic_write_text(p, value)
        out.append(p)
    return out


def read_metadata(metadata_dir: Path, spec: PackageSpec) -> Optional[Fingerprint]:
    """
    Read a stored fingerprint. Any missing or undecodable component -> None.
    """
    values: list[str] = []
    for name in spec.metadata_names():
        p = Path(metadata_dir) / name
        if not p.is_file():
            return None
        # newline="" keeps the stored bytes exactly as written
        try:
            with p.open("r", encoding="utf-8", newline="") as f:
                values.append(f.read())
        except UnicodeDecodeError:
            log.warning("cache.metadata_undecodable", path=str(p))
            return None
    return Fingerprint(*values)


class FingerprintCache:
    """
    Decides whether the cached artifact satisfies the current request.

    All-or-nothing: the compiled binary is one opaque unit, so a mismatch in
    any single component (or a missing metadata file) invalidates the whole
    entry.
    """

    def __init__(self, spec: PackageSpec, layout: BuildLayout) -> None:
        self.spec = spec
        self.layout = layout

    def read_stored(self) -> Optional[Fingerprint]:
        return read_metadata(self.layout.cache_metadata(), self.spec)

    def decide(self, request: BuildRequest) -> CacheDecision:
        current = Fingerprint.from_request(request)

        if not self.layout.cache_entry().is_dir():
            return self._decision(CacheAction.REBUILD, "no cache entry", current)

        try:
            stored = self.read_stored()
        except OSError as e:
            raise CacheIOFailure(f"cache metadata unreadable: {e}") from e
        if stored is None:
            return self._decision(
                CacheAction.REBUILD, "cache metadata incomplete", current
            )

        changed = [
            name
            for name, old, new in zip(
                self.spec.metadata_names(), stored.values(), current.values()
            )
            if old != new
        ]
        if changed:
            return self._decision(
                CacheAction.REBUILD,
                f"fingerprint changed: {', '.join(changed)}",
                current,
                stored,
            )

        return self._decision(CacheAction.REUSE, "fingerprint match", current, stored)

    def _decision(
        self,
        action: CacheAction,
        reason: str,
        current: Fingerprint,
        stored: Optional[Fingerprint] = None,
    ) -> CacheDecision:
        log.info(
            "cache.decision",
            action=action.value,
            reason=reason,
            fingerprint=current.digest(),
            stored=stored.digest() if stored else None,
        )
        return CacheDecision(action=action, reason=reason, current=current, stored=stored)
