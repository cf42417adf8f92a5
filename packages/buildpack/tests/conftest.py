from __future__ import annotations

import io
import tarfile
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest
from nginx_buildpack.build import make_http_client
from nginx_buildpack.core import BuildLayout, Settings
from nginx_buildpack.resolve import PackageSpec

FAKE_CONFIGURE = """\
#!/bin/sh
printf '%s\\n' "$*" >> "$FAKE_CONFIGURE_LOG"
for a in "$@"; do
  case "$a" in
    --with-pcre=*) [ -d "${a#--with-pcre=}" ] || { echo "pcre sources missing"; exit 1; } ;;
  esac
done
echo "checking for OS"
echo "configured"
"""

FAKE_BUILD = """\
#!/bin/sh
echo "compiling"
mkdir -p objs
printf '#!/bin/sh\\necho "nginx version: fake"\\n' > objs/nginx
echo "done"
"""

FAILING_BUILD = """\
#!/bin/sh
echo "src/core/nginx.c: error: boom"
exit 2
"""


def make_tarball(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, text in files.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def nginx_tarball(version: str, *, build_script: str = FAKE_BUILD) -> bytes:
    root = f"nginx-{version}"
    return make_tarball(
        {
            f"{root}/configure": FAKE_CONFIGURE,
            f"{root}/build.sh": build_script,
            f"{root}/README": f"nginx {version}\n",
        }
    )


def pcre_tarball(version: str) -> bytes:
    return make_tarball({f"pcre-{version}/README": f"pcre {version}\n"})


@dataclass
class FakeUpstream:
    spec: PackageSpec
    archives: dict[str, bytes] = field(default_factory=dict)
    requests: list[str] = field(default_factory=list)
    status_overrides: dict[str, int] = field(default_factory=dict)

    def add_nginx(self, version: str, **kw) -> None:
        url = self.spec.source_url_template.format(version=version)
        self.archives[url] = nginx_tarball(version, **kw)

    def add_broken_nginx(self, version: str) -> None:
        self.add_nginx(version, build_script=FAILING_BUILD)

    def add_pcre(self, version: str) -> None:
        url = self.spec.secondary_url_template.format(version=version)
        self.archives[url] = pcre_tarball(version)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.status_overrides:
            return httpx.Response(self.status_overrides[url], text="unavailable")
        body = self.archives.get(url)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(
            200, content=body, headers={"Content-Type": "application/gzip"}
        )

    def client(self) -> httpx.Client:
        return make_http_client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def tarball():
    return make_tarball


@pytest.fixture
def spec() -> PackageSpec:
    return PackageSpec(
        configure_command=("sh", "./configure"),
        compile_command=("sh", "build.sh"),
    )


@pytest.fixture
def configure_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    p = tmp_path / "configure.log"
    monkeypatch.setenv("FAKE_CONFIGURE_LOG", str(p))
    return p


@pytest.fixture
def upstream(spec: PackageSpec) -> FakeUpstream:
    up = FakeUpstream(spec=spec)
    for v in ("1.7.9", "1.6.2"):
        up.add_nginx(v)
    for v in ("8.36", "8.35"):
        up.add_pcre(v)
    return up


@pytest.fixture
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    build_dir = tmp_path / "build"
    cache_dir = tmp_path / "cache"
    build_dir.mkdir()
    cache_dir.mkdir()
    return build_dir, cache_dir


@pytest.fixture
def layout(dirs: tuple[Path, Path], spec: PackageSpec) -> BuildLayout:
    build_dir, cache_dir = dirs
    return BuildLayout(
        build_dir=build_dir, cache_dir=cache_dir, package=spec.name, binary=spec.binary
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(run_root=tmp_path / "runs")
