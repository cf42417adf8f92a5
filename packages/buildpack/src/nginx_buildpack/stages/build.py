from __future__ import annotations

from typing import Any

from nginx_buildpack.build import BuildPipeline
from nginx_buildpack.cache import ArtifactCache, write_metadata
from nginx_buildpack.core import ExternalToolFailure
from nginx_buildpack.pipeline.context import RunContext
from nginx_buildpack.pipeline.events import EventType

# Lines of tool output kept in the failure event; the full output was
# already streamed to the console.
FAILURE_TAIL_LINES = 30


def stage_build(ctx: RunContext) -> dict[str, Any]:
    if ctx.decision is None:
        raise RuntimeError("stage_build requires the cache stage to run first")

    if ctx.decision.reuse:
        return {"_skipped": "cache hit"}

    request = ctx.request
    ctx.emit(
        EventType.BUILD_START,
        stage="build",
        package_version=request.package_version,
        secondary_dependency_version=request.secondary_dependency_version,
        configure_options=request.configure_options,
    )

    pipeline = BuildPipeline(
        ctx.spec,
        ctx.layout,
        client=ctx.inputs.client,
        tool_runner=ctx.inputs.tool_runner,
    )
    try:
        binary = pipeline.build(request)
    except ExternalToolFailure as e:
        ctx.emit(
            EventType.BUILD_FAILED,
            stage="build",
            command=list(e.command),
            returncode=e.returncode,
            output_tail=list(e.output_tail[-FAILURE_TAIL_LINES:]),
        )
        raise

    metadata = write_metadata(ctx.layout.build_metadata(), ctx.spec, ctx.decision.current)
    art = ArtifactCache(ctx.spec, ctx.layout).store()

    ctx.emit(EventType.CACHE_STORED, stage="build", binary=str(art.binary_path))
    ctx.emit(EventType.BUILD_FINISH, stage="build", binary=str(binary))

    return {
        "binary": str(binary),
        "cached_binary": str(art.binary_path),
        "metadata": [str(p) for p in metadata],
        "_artifacts": [ctx.record_artifact(stage="build", path=binary)],
    }
