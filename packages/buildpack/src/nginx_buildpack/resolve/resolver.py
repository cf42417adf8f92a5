from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping

import structlog
from nginx_buildpack.core import ConfigurationWarning

from .models import SYSTEM_SENTINEL, BuildRequest, PackageSpec
from .sources import collect_overrides, read_config_file

log = structlog.get_logger(__name__)

# Named channels are accepted but not distinguished: both resolve to the
# default version.
RELEASE_CHANNELS = frozenset({"mainline", "stable"})

Origin = Literal["default", "file", "override"]


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    request: BuildRequest
    diagnostics: tuple[ConfigurationWarning, ...] = ()
    origins: dict[str, Origin] = field(default_factory=dict)

    def warnings(self) -> tuple[ConfigurationWarning, ...]:
        return tuple(d for d in self.diagnostics if d.level == "warning")


def is_unsafe_range(version: str) -> bool:
    v = version.strip()
    return v == "*" or v.startswith(">")


def _resolve_version(
    key: str,
    raw: str | None,
    default: str,
    *,
    allow_system: bool = False,
) -> tuple[str, ConfigurationWarning | None]:
    if raw is None or not raw.strip():
        return default, ConfigurationWarning(
            level="info",
            field=key,
            message=(
                f"No {key} specified, using default {default}. "
                f"Pin it explicitly (e.g. {key}={default}) to avoid surprise upgrades."
            ),
        )

    v = raw.strip()
    if allow_system and v == SYSTEM_SENTINEL:
        return v, None

    if is_unsafe_range(v):
        return default, ConfigurationWarning(
            level="warning",
            field=key,
            message=(
                f"{key}={v!r} is an unbounded version range and was ignored, "
                f"using {default}. Ranges can pull in untested upstream releases; "
                f"pin an exact version instead."
            ),
        )

    if v in RELEASE_CHANNELS:
        return default, ConfigurationWarning(
            level="info",
            field=key,
            message=(
                f"{key}={v!r} names a release channel, which is not tracked, "
                f"using {default}. Pin an exact version instead."
            ),
        )

    return v, None


def resolve_build_request(
    spec: PackageSpec,
    *,
    build_dir: Path,
    env_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ResolvedConfig:
    """
    Merge defaults, `<build_dir>/<spec.config_file>` and external overrides
    (later wins) into one BuildRequest. Never raises for bad or missing
    values: every problem degrades to a default plus a diagnostic.
    """
    environ = os.environ if environ is None else environ
    keys = (spec.version_key, spec.secondary_version_key, spec.configure_options_key)

    file_values, diags = read_config_file(Path(build_dir) / spec.config_file)
    overrides = collect_overrides(keys, env_dir=env_dir, environ=environ)

    merged: dict[str, str] = {}
    origins: dict[str, Origin] = {k: "default" for k in keys}
    for key in keys:
        if key in file_values:
            merged[key] = file_values[key]
            origins[key] = "file"
        if key in overrides:
            merged[key] = overrides[key]
            origins[key] = "override"

    version, d = _resolve_version(
        spec.version_key, merged.get(spec.version_key), spec.default_version
    )
    if d is not None:
        diags.append(d)

    secondary, d = _resolve_version(
        spec.secondary_version_key,
        merged.get(spec.secondary_version_key),
        spec.secondary_default_version,
        allow_system=True,
    )
    if d is not None:
        diags.append(d)

    options = merged.get(spec.configure_options_key)
    if options is None:
        options = ""
        diags.append(
            ConfigurationWarning(
                level="info",
                field=spec.configure_options_key,
                message=(
                    f"No {spec.configure_options_key} specified, building with "
                    f"{spec.name} defaults."
                ),
            )
        )

    request = BuildRequest.for_spec(
        spec,
        package_version=version,
        secondary_dependency_version=secondary,
        configure_options=options,
    )

    log.debug(
        "config.resolved",
        package_version=request.package_version,
        secondary_dependency_version=request.secondary_dependency_version,
        configure_options=request.configure_options,
        origins=origins,
    )
    return ResolvedConfig(request=request, diagnostics=tuple(diags), origins=origins)
