from __future__ import annotations

from typing import Any

from nginx_buildpack.bootstrap import RuntimeBootstrapGenerator
from nginx_buildpack.pipeline.context import RunContext
from nginx_buildpack.pipeline.events import EventType


def stage_bootstrap(ctx: RunContext) -> dict[str, Any]:
    result = RuntimeBootstrapGenerator(ctx.spec, ctx.layout).generate()

    ctx.emit(
        EventType.BOOTSTRAP_FINISH,
        stage="bootstrap",
        written=len(result.written),
        skipped=len(result.skipped),
    )

    return {
        "written": [str(p) for p in result.written],
        "skipped": [str(p) for p in result.skipped],
        "_artifacts": [
            ctx.record_artifact(stage="bootstrap", path=p) for p in result.written
        ],
        "_metrics": {"written": len(result.written), "skipped": len(result.skipped)},
    }
