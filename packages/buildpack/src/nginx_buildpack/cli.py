from __future__ import annotations

import argparse
from pathlib import Path

from nginx_buildpack.bootstrap import render_release
from nginx_buildpack.build import StreamingToolRunner
from nginx_buildpack.compile import CompileOutcome, detect, run_compile
from nginx_buildpack.core import (
    bind,
    clear_bindings,
    configure_logging,
    get_logger,
    load_settings,
    new_run_id,
)
from nginx_buildpack.pipeline.stage import StageFn
from nginx_buildpack.resolve import PackageSpec, ResolvedConfig
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()

# Stages whose work is quiet enough for a spinner; the build stage streams
# compiler output instead.
_SPINNER_STAGES = frozenset({"cache", "bootstrap"})


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="nginx-buildpack")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("compile", help="Build or restore nginx and write runtime files")
    c.add_argument("build_dir", type=Path, help="Application build directory")
    c.add_argument("cache_dir", type=Path, help="Directory persisted between builds")
    c.add_argument(
        "env_dir",
        type=Path,
        nargs="?",
        default=None,
        help="Directory of externally supplied variables (one file per variable)",
    )

    d = sub.add_parser("detect", help="Exit 0 if the app uses this buildpack")
    d.add_argument("build_dir", type=Path)

    r = sub.add_parser("release", help="Print default process types")
    r.add_argument("build_dir", type=Path, nargs="?", default=None)

    return p


def _with_status(stage_id: str, fn: StageFn) -> StageFn:
    if stage_id not in _SPINNER_STAGES:
        return fn

    def _run_with_status(ctx):
        with console.status(f"[bold]{stage_id}[/]", spinner="dots"):
            return fn(ctx)

    return _run_with_status


def _print_tips(resolved: ResolvedConfig) -> None:
    for d in resolved.diagnostics:
        style = "yellow" if d.level == "warning" else "cyan"
        console.print(Text(f"-----> Tip: {d.message}", style=style))


def _print_summary(outcome: CompileOutcome) -> None:
    req = outcome.resolved.request
    report = outcome.report

    tbl = Table(title="Result", show_header=False, box=None)
    tbl.add_row(
        "status",
        "[green]ok[/green]" if outcome.exit_code == 0 else "[red]failed[/red]",
    )
    tbl.add_row("version", Text(req.package_version))
    tbl.add_row("secondary", Text(req.secondary_dependency_version))
    tbl.add_row("configure options", Text(req.configure_options or "(none)"))
    for s in report.stages:
        tbl.add_row(f"stage {s.stage}", Text(s.skip_reason or s.status))
    tbl.add_row("report", Text(str(outcome.report_path)))
    console.print(tbl)

    failed = report.failed_stage()
    if failed is not None and failed.error is not None:
        console.print(
            Panel.fit(
                Text(f"{failed.error.exc_type}: {failed.error.message}", style="bold red"),
                title=f"Build failed in stage '{failed.stage}'",
            )
        )


def _cmd_compile(args: argparse.Namespace) -> int:
    s = load_settings()
    configure_logging(level=s.log_level, fmt=s.log_format, console=console)
    log = get_logger("nginx_buildpack")

    run_id = new_run_id()
    bind(run_id=run_id, command="compile")

    console.print(
        Panel.fit(
            Text(f"nginx-buildpack - compile\nrun_id={run_id}", style="bold"),
            title="Run",
        )
    )

    try:
        outcome = run_compile(
            build_dir=args.build_dir,
            cache_dir=args.cache_dir,
            env_dir=args.env_dir,
            settings=s,
            tool_runner=StreamingToolRunner(console=console),
            logger=log,
            run_id=run_id,
            wrap_stage=_with_status,
            on_resolved=_print_tips,
        )
    finally:
        clear_bindings()

    _print_summary(outcome)
    return outcome.exit_code


def _cmd_detect(args: argparse.Namespace) -> int:
    spec = PackageSpec()
    if detect(args.build_dir, spec):
        print(spec.name)
        return 0
    return 1


def _cmd_release(args: argparse.Namespace) -> int:
    print(render_release(PackageSpec()), end="")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    handlers = {
        "compile": _cmd_compile,
        "detect": _cmd_detect,
        "release": _cmd_release,
    }
    return handlers[args.cmd](args)


if __name__ == "__main__":
    raise SystemExit(main())
