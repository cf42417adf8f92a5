"""Runtime bootstrap files for the process supervisor."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog
from nginx_buildpack.core import BuildLayout, atomic_write_text
from nginx_buildpack.resolve import PackageSpec

from .templates import (
    render_conf_template,
    render_launch_script,
    render_procfile,
    render_profile_d,
)

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BootstrapFile:
    kind: str
    path: Path
    content: str
    mode: int = 0o644


@dataclass(slots=True)
class BootstrapResult:
    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


def should_write(path: Path) -> bool:
    """
    True only when nothing (not even a dangling symlink) exists at `path`.
    Existing files are left alone so user edits survive repeated builds.
    """
    path = Path(path)
    return not (path.exists() or path.is_symlink())


class RuntimeBootstrapGenerator:
    def __init__(self, spec: PackageSpec, layout: BuildLayout) -> None:
        self.spec = spec
        self.layout = layout

    def plan(self) -> list[BootstrapFile]:
        spec, layout = self.spec, self.layout
        return [
            BootstrapFile(
                kind="launch_script",
                path=layout.launch_bin_dir() / spec.launch_script,
                content=render_launch_script(spec),
                mode=0o755,
            ),
            BootstrapFile(
                kind="procfile",
                path=layout.procfile(),
                content=render_procfile(spec),
            ),
            BootstrapFile(
                kind="profile_d",
                path=layout.profile_d() / f"{spec.name}.sh",
                content=render_profile_d(spec),
            ),
            BootstrapFile(
                kind="conf_template",
                path=layout.config_dir() / f"{spec.name}.conf.template",
                content=render_conf_template(spec),
            ),
        ]

    def generate(self) -> BootstrapResult:
        result = BootstrapResult()
        for f in self.plan():
            if not should_write(f.path):
                log.info("bootstrap.skipped", kind=f.kind, path=str(f.path))
                result.skipped.append(f.path)
                continue
            atomic_write_text(f.path, f.content, mode=f.mode)
            log.info("bootstrap.written", kind=f.kind, path=str(f.path))
            result.written.append(f.path)
        return result
