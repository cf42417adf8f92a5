from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import httpx
from nginx_buildpack.build.tools import ToolRunner
from nginx_buildpack.cache import CacheDecision
from nginx_buildpack.core import BuildLayout, FileDigest, ILogger, relpath_posix
from nginx_buildpack.resolve import BuildRequest, PackageSpec

from .events import EventSink, EventType, make_event


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """
    A file a stage installed, restored or wrote, relative to the build dir.
    """

    path: str
    bytes: int
    sha256: str


@dataclass(frozen=True, slots=True)
class RunInputs:
    """
    Everything a compile run needs, resolved before the first stage starts.
    """

    spec: PackageSpec
    layout: BuildLayout
    request: BuildRequest
    client: httpx.Client
    tool_runner: Optional[ToolRunner] = None


@dataclass(slots=True)
class RunContext:
    """
    Context shared across stages for a single compile run.
    """

    run_id: str
    run_root: Path
    logger: ILogger
    events: EventSink
    inputs: RunInputs

    # set by the cache stage, read by the build stage
    decision: Optional[CacheDecision] = None

    # optional free-form metadata
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def spec(self) -> PackageSpec:
        return self.inputs.spec

    @property
    def layout(self) -> BuildLayout:
        return self.inputs.layout

    @property
    def request(self) -> BuildRequest:
        return self.inputs.request

    def stage_logger(self, stage: str) -> ILogger:
        return self.logger.bind(stage=stage)

    def emit(self, event: EventType | str, *, stage: str | None = None, **kw: object) -> None:
        event_value = event.value if isinstance(event, EventType) else str(event)
        # Keep event chatter at debug level to leave console logs readable.
        self.logger.debug(event_value, event_type=event_value, stage=stage, **kw)
        self.events.emit(
            make_event(event_type=event_value, run_id=self.run_id, stage=stage, **kw)
        )

    def record_artifact(self, *, stage: str, path: Path) -> ArtifactRef:
        p = Path(path)
        digest = FileDigest.of(p)
        art = ArtifactRef(
            path=relpath_posix(p, self.layout.build_dir),
            bytes=digest.bytes,
            sha256=digest.sha256,
        )
        self.emit(
            EventType.ARTIFACT_WRITTEN,
            stage=stage,
            path=art.path,
            bytes=art.bytes,
            sha256=art.sha256,
        )
        return art
