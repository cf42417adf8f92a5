from __future__ import annotations

import re
import shlex
from pathlib import Path
from typing import Iterable, Mapping

from nginx_buildpack.core import ConfigurationWarning

_key_re = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_config_text(
    text: str, *, source: str = "config"
) -> tuple[dict[str, str], list[ConfigurationWarning]]:
    """
    Parse a shell-sourced key=value file.

    Accepts blank lines, `#` comments, an optional `export ` prefix and
    single/double quoted values. Lines that a shell would not treat as a plain
    assignment are ignored with a warning rather than failing the build.
    """
    values: dict[str, str] = {}
    diags: list[ConfigurationWarning] = []

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()

        key, eq, rest = line.partition("=")
        key = key.strip()
        if not eq or not _key_re.match(key):
            diags.append(
                ConfigurationWarning(
                    level="warning",
                    field=source,
                    message=f"{source}:{lineno}: ignoring line that is not KEY=value",
                )
            )
            continue

        try:
            tokens = shlex.split(rest, comments=True, posix=True)
        except ValueError as e:
            diags.append(
                ConfigurationWarning(
                    level="warning",
                    field=key,
                    message=f"{source}:{lineno}: ignoring {key} ({e})",
                )
            )
            continue

        if len(tokens) > 1:
            diags.append(
                ConfigurationWarning(
                    level="warning",
                    field=key,
                    message=(
                        f"{source}:{lineno}: {key} has unquoted spaces; a shell sourcing"
                        f" this file sets only {tokens[0]!r} and runs the rest as a"
                        " command, quote the value"
                    ),
                )
            )
        values[key] = " ".join(tokens)

    return values, diags


def read_config_file(path: Path) -> tuple[dict[str, str], list[ConfigurationWarning]]:
    """
    Read the optional project-local config file. Absent file -> no values.
    """
    path = Path(path)
    if not path.is_file():
        return {}, []
    return parse_config_text(path.read_text(encoding="utf-8"), source=path.name)


def read_env_dir(env_dir: Path | None, keys: Iterable[str]) -> dict[str, str]:
    """
    Read externally injected variables from an env dir: one file per variable,
    file name is the key, file content is the value.
    """
    if env_dir is None:
        return {}
    env_dir = Path(env_dir)
    if not env_dir.is_dir():
        return {}

    out: dict[str, str] = {}
    for key in keys:
        p = env_dir / key
        if p.is_file():
            out[key] = p.read_text(encoding="utf-8").rstrip("\r\n")
    return out


def collect_overrides(
    keys: Iterable[str],
    *,
    env_dir: Path | None,
    environ: Mapping[str, str],
) -> dict[str, str]:
    """
    External overrides: a process environment variable wins; the env dir only
    fills keys that are unset in the process environment.
    """
    keys = tuple(keys)
    out = read_env_dir(env_dir, keys)
    for key in keys:
        if key in environ:
            out[key] = environ[key]
    return out
