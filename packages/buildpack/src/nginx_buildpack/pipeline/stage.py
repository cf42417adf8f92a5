from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from nginx_buildpack.core import StageError, monotonic_ms, stage_error_from_exc, utc_now_iso

from .context import ArtifactRef, RunContext
from .events import EventType


def format_duration_ms(ms: int) -> str:
    """Return a short human-readable duration string."""
    if ms < 1000:
        return f"{ms} ms"
    return f"{ms / 1000:.2f} s"


StageFn = Callable[[RunContext], dict[str, Any] | None]


@dataclass(slots=True)
class FunctionStage:
    """
    Adapter that turns a plain function into a Stage.
    """

    stage_id: str
    fn: StageFn

    def run(self, ctx: RunContext) -> dict[str, Any] | None:
        return self.fn(ctx)


@dataclass(slots=True)
class StageResult:
    stage: str
    status: str  # "success" | "failed" | "skipped"
    started_at_utc: str
    finished_at_utc: str
    duration_ms: int

    outputs: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    artifacts: list[ArtifactRef] = field(default_factory=list)
    skip_reason: Optional[str] = None
    error: Optional[StageError] = None


class Stage(Protocol):
    stage_id: str

    def run(self, ctx: RunContext) -> dict[str, Any] | None: ...


def _pop_list(out: dict[str, Any], key: str) -> list[Any]:
    v = out.pop(key, None)
    return list(v) if isinstance(v, list) else []


def run_stage(
    *,
    ctx: RunContext,
    stage: Stage,
    index: int | None = None,
    total: int | None = None,
) -> StageResult:
    """
    Run one stage. Any exception is the stage's failure: it is logged with
    its traceback and returned as a failed StageResult, never re-raised.

    Stage outputs may carry `_warnings`, `_metrics`, `_artifacts` and
    `_skipped` (a reason string) which are lifted into the result.
    """
    stage_id = stage.stage_id
    log = ctx.stage_logger(stage_id)

    t0 = monotonic_ms()
    started_at = utc_now_iso()
    position = f"{index}/{total}" if index is not None and total is not None else None

    ctx.emit(EventType.STAGE_START, stage=stage_id)
    log.info("Stage starting", position=position)

    try:
        out = stage.run(ctx) or {}
        if not isinstance(out, dict):
            raise TypeError(
                f"Stage {stage_id} returned {type(out).__name__}, expected dict or None"
            )
    except Exception as e:
        duration = monotonic_ms() - t0

        ctx.emit(
            EventType.STAGE_FAILED,
            stage=stage_id,
            duration_ms=duration,
            exc_type=type(e).__name__,
            message=str(e),
        )
        log.error(
            "Stage failed",
            status="failed",
            position=position,
            duration=format_duration_ms(duration),
            error=str(e),
        )
        log.exception("Stage exception")

        return StageResult(
            stage=stage_id,
            status="failed",
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            duration_ms=duration,
            error=stage_error_from_exc(e),
        )

    warnings = [str(x) for x in _pop_list(out, "_warnings")]
    artifacts = _pop_list(out, "_artifacts")
    m = out.pop("_metrics", None)
    metrics: dict[str, Any] = dict(m) if isinstance(m, dict) else {}
    skip_reason = out.pop("_skipped", None)

    for w in warnings:
        ctx.emit(EventType.STAGE_WARN, stage=stage_id, message=w)
        log.warning(w)

    if metrics:
        ctx.emit(EventType.STAGE_METRICS, stage=stage_id, metrics=metrics)

    duration = monotonic_ms() - t0
    status = "skipped" if skip_reason else "success"

    if skip_reason:
        ctx.emit(EventType.STAGE_SKIPPED, stage=stage_id, reason=str(skip_reason))
        log.info("Stage skipped", position=position, reason=str(skip_reason))
    else:
        ctx.emit(EventType.STAGE_SUCCESS, stage=stage_id, duration_ms=duration)
        log.info(
            "Stage succeeded",
            position=position,
            duration=format_duration_ms(duration),
            warnings=len(warnings),
            artifacts=len(artifacts),
            outputs=sorted(out.keys()),
        )

    return StageResult(
        stage=stage_id,
        status=status,
        started_at_utc=started_at,
        finished_at_utc=utc_now_iso(),
        duration_ms=duration,
        outputs=out,
        metrics=metrics,
        warnings=warnings,
        artifacts=artifacts,
        skip_reason=str(skip_reason) if skip_reason else None,
    )
