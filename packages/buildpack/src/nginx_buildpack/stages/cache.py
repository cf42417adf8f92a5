from __future__ import annotations

from typing import Any

from nginx_buildpack.cache import ArtifactCache, FingerprintCache
from nginx_buildpack.pipeline.context import RunContext
from nginx_buildpack.pipeline.events import EventType


def stage_cache(ctx: RunContext) -> dict[str, Any]:
    """
    Decide reuse vs rebuild. A hit restores the cached binary into the build
    dir; a miss purges the whole previous entry before anything is built.
    """
    decision = FingerprintCache(ctx.spec, ctx.layout).decide(ctx.request)
    ctx.decision = decision

    ctx.emit(
        EventType.CACHE_DECISION,
        stage="cache",
        action=decision.action.value,
        reason=decision.reason,
        fingerprint=decision.current.digest(),
        stored=decision.stored.digest() if decision.stored else None,
    )

    store = ArtifactCache(ctx.spec, ctx.layout)

    if decision.reuse:
        art = store.restore()
        ctx.emit(EventType.CACHE_RESTORED, stage="cache", binary=str(art.binary_path))
        return {
            "action": decision.action.value,
            "reason": decision.reason,
            "binary": str(art.binary_path),
            "_artifacts": [ctx.record_artifact(stage="cache", path=art.binary_path)],
        }

    purged = store.purge()
    ctx.emit(EventType.CACHE_PURGED, stage="cache", removed=purged)
    return {
        "action": decision.action.value,
        "reason": decision.reason,
        "purged": purged,
    }
