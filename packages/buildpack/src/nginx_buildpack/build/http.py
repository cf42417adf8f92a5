from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog
from nginx_buildpack.core import FetchFailure, safe_unlink

log = structlog.get_logger(__name__)


class HttpStatusError(FetchFailure):
    """
    Any status other than 200 for a source archive download.
    """

    def __init__(
        self,
        *,
        url: str,
        status_code: int,
        body_snippet: str | None,
    ) -> None:
        msg = f"HTTP {status_code} for GET {url}"
        if body_snippet:
            msg += f" (body: {body_snippet})"
        super().__init__(msg, url=url)
        self.status_code = status_code


def make_http_client(
    *,
    connect_timeout: float = 10.0,
    follow_redirects: bool = True,
    user_agent: str = "nginx-buildpack/0.1",
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    # Archive downloads block until done: only connecting is bounded.
    t = httpx.Timeout(None, connect=connect_timeout)
    return httpx.Client(
        timeout=t,
        follow_redirects=follow_redirects,
        headers={"User-Agent": user_agent},
        transport=transport,
    )


@dataclass(frozen=True, slots=True)
class HttpDownloadResult:
    url: str
    final_url: str
    content_type: str | None
    bytes_written: int


def _body_snippet(resp: httpx.Response, *, limit: int = 200) -> str | None:
    """
    Best-effort, bounded snippet of a streamed error body for debugging.
    """
    try:
        buf = bytearray()
        for chunk in resp.iter_bytes(chunk_size=min(4096, limit * 4)):
            if not chunk:
                continue
            buf.extend(chunk)
            if len(buf) >= limit * 4:
                break
        s = bytes(buf).decode("utf-8", errors="replace")[:limit].strip()
        return s or None
    except httpx.HTTPError:
        return None


def download_to_file(
    client: httpx.Client,
    *,
    url: str,
    dest_path: os.PathLike[str] | str,
    chunk_bytes: int = 1024 * 128,
) -> HttpDownloadResult:
    """
    Stream GET `url` into `dest_path`. Single attempt: any transport error or
    non-200 status raises FetchFailure and leaves no partial file behind.
    """
    dest = Path(dest_path)
    safe_unlink(dest)

    try:
        with client.stream("GET", url) as resp:
            if resp.status_code != 200:
                raise HttpStatusError(
                    url=url,
                    status_code=resp.status_code,
                    body_snippet=_body_snippet(resp),
                )

            dest.parent.mkdir(parents=True, exist_ok=True)
            total = 0
            with dest.open("wb") as f:
                for chunk in resp.iter_bytes(chunk_size=chunk_bytes):
                    if not chunk:
                        continue
                    f.write(chunk)
                    total += len(chunk)
                f.flush()
                os.fsync(f.fileno())

            content_type = resp.headers.get("Content-Type")
            final_url = str(resp.url)
    except FetchFailure:
        safe_unlink(dest)
        raise
    except httpx.HTTPError as e:
        safe_unlink(dest)
        raise FetchFailure(f"download failed for {url}: {e}", url=url) from e
    except OSError:
        safe_unlink(dest)
        raise

    if total <= 0:
        safe_unlink(dest)
        raise FetchFailure(f"empty content from {url}", url=url)

    log.info("http.downloaded", url=url, final_url=final_url, bytes=total)
    return HttpDownloadResult(
        url=url,
        final_url=final_url,
        content_type=content_type,
        bytes_written=total,
    )
