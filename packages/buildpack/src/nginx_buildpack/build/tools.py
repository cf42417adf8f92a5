from __future__ import annotations

import subprocess
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol, Sequence

import structlog
from nginx_buildpack.core import ExternalToolFailure
from rich.console import Console

log = structlog.get_logger(__name__)

INDENT = "       "


@dataclass(frozen=True, slots=True)
class ToolResult:
    command: tuple[str, ...]
    returncode: int
    output_tail: tuple[str, ...]


class ToolRunner(Protocol):
    def __call__(self, command: Sequence[str], *, cwd: Path) -> ToolResult: ...


class StreamingToolRunner:
    """
    Runs an external build tool with stdout and stderr merged, echoing each
    line indented to the console and keeping the last `tail_lines` lines for
    the failure report.
    """

    def __init__(
        self,
        *,
        console: Console | None = None,
        env: Mapping[str, str] | None = None,
        tail_lines: int = 200,
    ) -> None:
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.env = dict(env) if env is not None else None
        self.tail_lines = tail_lines

    def __call__(self, command: Sequence[str], *, cwd: Path) -> ToolResult:
        cmd = tuple(command)
        tail: deque[str] = deque(maxlen=self.tail_lines)
        log.info("tool.start", command=" ".join(cmd), cwd=str(cwd))

        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(cwd),
                env=self.env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise ExternalToolFailure(
                f"could not start {cmd[0]}: {e}", command=cmd
            ) from e

        assert proc.stdout is not None
        with proc.stdout:
            for line in proc.stdout:
                line = line.rstrip("\n")
                tail.append(line)
                self.console.out(INDENT + line, highlight=False)
        returncode = proc.wait()

        log.info("tool.finish", command=" ".join(cmd), returncode=returncode)
        return ToolResult(command=cmd, returncode=returncode, output_tail=tuple(tail))


def check_tool(runner: ToolRunner, command: Sequence[str], *, cwd: Path) -> ToolResult:
    """
    Run `command` and raise ExternalToolFailure on nonzero exit.
    """
    res = runner(command, cwd=cwd)
    if res.returncode != 0:
        raise ExternalToolFailure(
            f"{' '.join(res.command)} exited with status {res.returncode}",
            command=res.command,
            returncode=res.returncode,
            output_tail=res.output_tail,
        )
    return res
