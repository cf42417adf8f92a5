"""Fetch, configure, compile and install one package binary."""

from __future__ import annotations

import os
import shlex
from pathlib import Path

import httpx
import structlog
from nginx_buildpack.core import (
    BuildLayout,
    ExternalToolFailure,
    FileDigest,
    make_tmp_dir_in,
    remove_tree,
)
from nginx_buildpack.resolve import BuildRequest, PackageSpec

from .archive import extract_tarball
from .http import download_to_file
from .tools import StreamingToolRunner, ToolRunner, check_tool

log = structlog.get_logger(__name__)


def configure_option_string(spec: PackageSpec, request: BuildRequest) -> str:
    """
    Bundled dependency flag first (unless the host copy is used), then the
    user options verbatim. User options are never parsed or validated.
    """
    parts: list[str] = []
    if not request.uses_system_secondary:
        dirname = spec.secondary_dirname(request.secondary_dependency_version)
        parts.append(f"{spec.secondary_configure_flag}={dirname}")
    if request.configure_options:
        parts.append(request.configure_options)
    return " ".join(parts)


def configure_command(spec: PackageSpec, request: BuildRequest) -> list[str]:
    """
    The option string goes through `sh -c` unchanged, the same way a shell
    script would hand it to configure.
    """
    line = shlex.join(spec.configure_command)
    options = configure_option_string(spec, request)
    if options:
        line = f"{line} {options}"
    return ["sh", "-c", line]


def _archive_name(url: str, fallback: str) -> str:
    name = url.rstrip("/").split("/")[-1].split("?")[0]
    return name or f"{fallback}.tar.gz"


class BuildPipeline:
    """
    fetch -> configure -> compile -> install, inside a throwaway workspace
    under the build dir. The workspace is removed whatever happens once the
    build has started; nothing is installed unless both tools succeed.
    """

    def __init__(
        self,
        spec: PackageSpec,
        layout: BuildLayout,
        *,
        client: httpx.Client,
        tool_runner: ToolRunner | None = None,
    ) -> None:
        self.spec = spec
        self.layout = layout
        self.client = client
        self.tool_runner = tool_runner or StreamingToolRunner()

    def build(self, request: BuildRequest) -> Path:
        spec = self.spec
        workspace = make_tmp_dir_in(self.layout.build_dir, prefix=f".{spec.name}-build.")
        log.info(
            "build.start",
            package=spec.name,
            version=request.package_version,
            secondary=request.secondary_dependency_version,
            workspace=str(workspace),
        )

        try:
            src_root = self._fetch(
                url=request.source_url,
                download_dir=workspace,
                extract_dir=workspace,
                expect_dir=spec.source_dirname(request.package_version),
            )

            if request.uses_system_secondary:
                log.info("build.secondary_skipped", secondary=spec.secondary_name)
            else:
                assert request.secondary_source_url is not None
                self._fetch(
                    url=request.secondary_source_url,
                    download_dir=workspace,
                    extract_dir=src_root,
                    expect_dir=spec.secondary_dirname(
                        request.secondary_dependency_version
                    ),
                )

            check_tool(self.tool_runner, configure_command(spec, request), cwd=src_root)
            check_tool(self.tool_runner, list(spec.compile_command), cwd=src_root)

            return self._install(src_root / spec.binary_relpath)
        finally:
            try:
                remove_tree(workspace)
            except OSError as e:
                log.warning("build.cleanup_failed", workspace=str(workspace), error=str(e))

    def _fetch(
        self, *, url: str, download_dir: Path, extract_dir: Path, expect_dir: str
    ) -> Path:
        archive = download_dir / _archive_name(url, expect_dir)
        download_to_file(self.client, url=url, dest_path=archive)
        digest = FileDigest.of(archive)
        log.info("build.fetched", url=url, sha256=digest.sha256, bytes=digest.bytes)
        try:
            return extract_tarball(archive, extract_dir, expect_dir=expect_dir)
        finally:
            archive.unlink(missing_ok=True)

    def _install(self, built: Path) -> Path:
        if not built.is_file():
            raise ExternalToolFailure(
                f"build finished but {self.spec.binary_relpath} was not produced"
            )

        dest = self.layout.vendor_binary()
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.unlink(missing_ok=True)
        os.replace(built, dest)
        dest.chmod(0o755)

        log.info("build.installed", binary=str(dest))
        return dest
