from __future__ import annotations

import io
import json
import os
from pathlib import Path

import pytest
from nginx_buildpack.build import StreamingToolRunner
from nginx_buildpack.cache import read_metadata
from nginx_buildpack.cache.fingerprint import Fingerprint
from nginx_buildpack.cli import main
from nginx_buildpack.compile import CompileOutcome, detect, run_compile
from nginx_buildpack.core import BuildLayout, Settings, get_logger
from nginx_buildpack.resolve import PackageSpec
from rich.console import Console

NGINX_179 = "https://nginx.org/download/nginx-1.7.9.tar.gz"


@pytest.fixture
def compile_app(tmp_path: Path, spec: PackageSpec, upstream, settings: Settings):
    cache_dir = tmp_path / "cache"

    def _run(app: str, *, config: str | None = None, environ: dict[str, str] | None = None):
        build_dir = tmp_path / app
        build_dir.mkdir(exist_ok=True)
        if config is not None:
            (build_dir / "buildpack.config").write_text(config)
        with upstream.client() as client:
            return run_compile(
                build_dir=build_dir,
                cache_dir=cache_dir,
                spec=spec,
                settings=settings,
                environ=environ or {},
                client=client,
                tool_runner=StreamingToolRunner(console=Console(file=io.StringIO())),
                logger=get_logger("test"),
            )

    return _run


def _layout(spec: PackageSpec, tmp_path: Path, app: str) -> BuildLayout:
    return BuildLayout(
        build_dir=tmp_path / app, cache_dir=tmp_path / "cache", package=spec.name, binary=spec.binary
    )


def _stage_status(outcome: CompileOutcome) -> dict[str, str]:
    return {s.stage: s.status for s in outcome.report.stages}


def test_fresh_cache_builds_and_populates_cache(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    out = compile_app("app1")
    layout = _layout(spec, tmp_path, "app1")

    assert out.exit_code == 0
    assert _stage_status(out) == {"cache": "success", "build": "success", "bootstrap": "success"}
    assert upstream.requests == [
        NGINX_179,
        spec.secondary_url_template.format(version="8.36"),
    ]
    assert os.access(layout.vendor_binary(), os.X_OK)
    assert layout.cache_binary().is_file()
    assert read_metadata(layout.cache_metadata(), spec) == Fingerprint("1.7.9", "8.36", "")
    assert read_metadata(layout.build_metadata(), spec) == Fingerprint("1.7.9", "8.36", "")
    assert (layout.build_dir / "Procfile").read_text() == "web: bin/start-nginx\n"
    assert (layout.build_dir / "bin" / "start-nginx").is_file()

    # defaults were used, so the run carries tips for each missing value
    assert [d.field for d in out.resolved.diagnostics] == [
        "NGINX_VERSION",
        "PCRE_VERSION",
        "NGINX_CONFIGURE_OPTIONS",
    ]


def test_unchanged_config_restores_without_network(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    config = "NGINX_VERSION=1.7.9\nPCRE_VERSION=8.36\nNGINX_CONFIGURE_OPTIONS='--with-debug'\n"
    first = compile_app("app1", config=config)
    assert first.exit_code == 0
    upstream.requests.clear()
    configure_log.unlink()

    second = compile_app("app2", config=config)
    layout = _layout(spec, tmp_path, "app2")

    assert second.exit_code == 0
    assert upstream.requests == []
    assert not configure_log.exists()
    assert _stage_status(second)["build"] == "skipped"
    assert second.report.stages[1].skip_reason == "cache hit"
    assert second.report.stages[0].outputs["action"] == "reuse"
    assert "nginx version: fake" in layout.vendor_binary().read_text()
    assert read_metadata(layout.build_metadata(), spec) == Fingerprint(
        "1.7.9", "8.36", "--with-debug"
    )
    assert second.resolved.diagnostics == ()


def test_changed_options_force_rebuild(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    compile_app("app1", config="NGINX_CONFIGURE_OPTIONS='--with-debug'\n")
    upstream.requests.clear()

    out = compile_app(
        "app1", environ={"NGINX_CONFIGURE_OPTIONS": "--with-http_ssl_module"}
    )
    layout = _layout(spec, tmp_path, "app1")

    assert out.exit_code == 0
    assert out.report.stages[0].outputs["reason"] == (
        "fingerprint changed: nginx_configure_options"
    )
    assert out.report.stages[0].outputs["purged"] is True
    assert len(upstream.requests) == 2
    assert configure_log.read_text().splitlines()[-1] == (
        "--with-pcre=pcre-8.36 --with-http_ssl_module"
    )
    stored = read_metadata(layout.cache_metadata(), spec)
    assert stored is not None
    assert stored.configure_options == "--with-http_ssl_module"


def test_undecodable_cache_metadata_rebuilds(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    assert compile_app("app1").exit_code == 0
    layout = _layout(spec, tmp_path, "app1")
    (layout.cache_metadata() / "nginx_configure_options").write_bytes(b"\xff\xfe")
    upstream.requests.clear()

    out = compile_app("app1")

    assert out.exit_code == 0
    assert out.report.stages[0].outputs["reason"] == "cache metadata incomplete"
    assert out.report.stages[0].outputs["purged"] is True
    assert len(upstream.requests) == 2
    assert read_metadata(layout.cache_metadata(), spec) == Fingerprint("1.7.9", "8.36", "")

    upstream.requests.clear()
    again = compile_app("app1")
    assert again.exit_code == 0
    assert again.report.stages[0].outputs["action"] == "reuse"
    assert upstream.requests == []


def test_version_change_rebuilds_other_version(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    compile_app("app1")
    upstream.requests.clear()

    out = compile_app("app1", environ={"NGINX_VERSION": "1.6.2", "PCRE_VERSION": "8.35"})
    layout = _layout(spec, tmp_path, "app1")

    assert out.exit_code == 0
    assert upstream.requests == [
        "https://nginx.org/download/nginx-1.6.2.tar.gz",
        spec.secondary_url_template.format(version="8.35"),
    ]
    assert read_metadata(layout.cache_metadata(), spec) == Fingerprint("1.6.2", "8.35", "")


def test_failed_build_purges_cache_and_reports(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    assert compile_app("app1").exit_code == 0
    upstream.add_broken_nginx("1.6.2")

    out = compile_app("app2", environ={"NGINX_VERSION": "1.6.2"})
    layout = _layout(spec, tmp_path, "app2")

    assert out.exit_code == 1
    assert _stage_status(out) == {"cache": "success", "build": "failed"}
    failed = out.report.failed_stage()
    assert failed is not None and failed.error is not None
    assert failed.error.exc_type == "ExternalToolFailure"

    # the previous entry is gone and nothing half built was stored
    assert not layout.cache_entry().exists()
    assert not layout.vendor_binary().exists()
    assert not layout.procfile().exists()

    report = json.loads(out.report_path.read_text())
    assert report["status"] == "failed"
    assert report["meta"]["package_version"] == "1.6.2"

    events = [
        json.loads(x)
        for x in (out.report_path.parent / "events.jsonl").read_text().splitlines()
    ]
    build_failed = next(e for e in events if e["type"] == "build.failed")
    assert "src/core/nginx.c: error: boom" in build_failed["data"]["output_tail"]


def test_missing_upstream_version_is_fetch_failure(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    out = compile_app("app1", environ={"NGINX_VERSION": "9.9.9"})

    assert out.exit_code == 1
    failed = out.report.failed_stage()
    assert failed is not None and failed.error is not None
    assert failed.error.exc_type == "HttpStatusError"
    assert "HTTP 404" in failed.error.message
    assert upstream.requests == ["https://nginx.org/download/nginx-9.9.9.tar.gz"]
    assert not configure_log.exists()


def test_unsafe_range_builds_default_with_warning(
    compile_app, upstream, configure_log, spec, tmp_path
) -> None:
    out = compile_app("app1", config="NGINX_VERSION='*'\n")

    assert out.exit_code == 0
    assert out.resolved.request.package_version == "1.7.9"
    assert [w.field for w in out.resolved.warnings()] == ["NGINX_VERSION"]
    assert out.report.meta["diagnostics"][0]["level"] == "warning"
    assert upstream.requests[0] == NGINX_179


def test_run_root_defaults_under_cache_dir(
    tmp_path: Path, spec: PackageSpec, upstream, configure_log
) -> None:
    build_dir = tmp_path / "app"
    build_dir.mkdir()
    with upstream.client() as client:
        out = run_compile(
            build_dir=build_dir,
            cache_dir=tmp_path / "cache",
            spec=spec,
            settings=Settings(),
            environ={},
            client=client,
            tool_runner=StreamingToolRunner(console=Console(file=io.StringIO())),
            logger=get_logger("test"),
            run_id="fixed-run",
        )
    assert out.report_path == tmp_path / "cache" / ".buildpack-runs" / "fixed-run" / "run_report.json"


def test_detect(tmp_path: Path) -> None:
    assert not detect(tmp_path)
    (tmp_path / "buildpack.config").write_text("")
    assert detect(tmp_path)

    other = tmp_path / "other"
    (other / "config").mkdir(parents=True)
    (other / "config" / "nginx.conf.template").write_text("")
    assert detect(other)


def test_cli_detect_and_release(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["detect", str(tmp_path)]) == 1
    (tmp_path / "buildpack.config").write_text("")
    assert main(["detect", str(tmp_path)]) == 0
    assert capsys.readouterr().out == "nginx\n"

    assert main(["release", str(tmp_path)]) == 0
    assert capsys.readouterr().out == "---\ndefault_process_types:\n  web: bin/start-nginx\n"
