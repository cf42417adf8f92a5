"""One compile invocation: resolve, then cache -> build -> bootstrap."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

import httpx
import structlog
from nginx_buildpack.build import ToolRunner, make_http_client
from nginx_buildpack.core import BuildLayout, ILogger, Settings, load_settings
from nginx_buildpack.pipeline import PipelineRunner, RunInputs, RunnerConfig, RunReport
from nginx_buildpack.pipeline.stage import Stage, StageFn
from nginx_buildpack.resolve import PackageSpec, ResolvedConfig, resolve_build_request
from nginx_buildpack.stages import stage_bootstrap, stage_build, stage_cache

log = structlog.get_logger(__name__)

STAGES: tuple[tuple[str, StageFn], ...] = (
    ("cache", stage_cache),
    ("build", stage_build),
    ("bootstrap", stage_bootstrap),
)


@dataclass(frozen=True, slots=True)
class CompileOutcome:
    exit_code: int
    resolved: ResolvedConfig
    report: RunReport
    report_path: Path


def build_stages(wrap: Callable[[str, StageFn], StageFn] | None = None) -> list[Stage]:
    return [
        PipelineRunner.fn(stage_id=sid, fn=wrap(sid, fn) if wrap else fn)
        for sid, fn in STAGES
    ]


def log_diagnostics(resolved: ResolvedConfig) -> None:
    for d in resolved.diagnostics:
        if d.level == "warning":
            log.warning("config.tip", field=d.field, tip=d.message)
        else:
            log.info("config.tip", field=d.field, tip=d.message)


def run_compile(
    *,
    build_dir: Path,
    cache_dir: Path,
    env_dir: Path | None = None,
    spec: PackageSpec | None = None,
    settings: Settings | None = None,
    environ: Mapping[str, str] | None = None,
    client: httpx.Client | None = None,
    tool_runner: ToolRunner | None = None,
    logger: ILogger | None = None,
    run_id: str | None = None,
    wrap_stage: Callable[[str, StageFn], StageFn] | None = None,
    on_resolved: Callable[[ResolvedConfig], None] | None = None,
) -> CompileOutcome:
    spec = spec or PackageSpec()
    settings = settings or load_settings()
    build_dir = Path(build_dir)
    cache_dir = Path(cache_dir)

    resolved = resolve_build_request(
        spec, build_dir=build_dir, env_dir=env_dir, environ=environ
    )
    log_diagnostics(resolved)
    if on_resolved is not None:
        on_resolved(resolved)

    layout = BuildLayout(
        build_dir=build_dir, cache_dir=cache_dir, package=spec.name, binary=spec.binary
    )
    run_root = settings.run_root or layout.default_run_root()

    request = resolved.request
    meta: dict[str, Any] = {
        "package": spec.name,
        "package_version": request.package_version,
        "secondary_dependency_version": request.secondary_dependency_version,
        "configure_options": request.configure_options,
        "diagnostics": [
            {"level": d.level, "field": d.field, "message": d.message}
            for d in resolved.diagnostics
        ],
    }

    owns_client = client is None
    if client is None:
        client = make_http_client(connect_timeout=settings.connect_timeout)

    try:
        runner = PipelineRunner(
            stages=build_stages(wrap_stage),
            cfg=RunnerConfig(stop_on_failure=True),
            logger=logger,
        )
        exit_code, report, report_path = runner.run(
            inputs=RunInputs(
                spec=spec,
                layout=layout,
                request=request,
                client=client,
                tool_runner=tool_runner,
            ),
            run_root=run_root,
            run_id=run_id,
            meta=meta,
        )
    finally:
        if owns_client:
            client.close()

    return CompileOutcome(
        exit_code=exit_code,
        resolved=resolved,
        report=report,
        report_path=report_path,
    )


def detect(build_dir: Path, spec: PackageSpec | None = None) -> bool:
    """
    The app opts in by shipping either the config file or a config template.
    """
    spec = spec or PackageSpec()
    build_dir = Path(build_dir)
    return (build_dir / spec.config_file).is_file() or (
        build_dir / "config" / f"{spec.name}.conf.template"
    ).is_file()
