from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import Literal, Sequence


class BuildpackError(RuntimeError):
    """Base error"""


@dataclass(frozen=True, slots=True)
class StageError:
    """
    A normalized error record for stage failures.
    """

    exc_type: str
    message: str
    traceback: str


def stage_error_from_exc(exc: BaseException) -> StageError:
    return StageError(
        exc_type=type(exc).__name__,
        message=str(exc),
        traceback=traceback.format_exc(),
    )


@dataclass(frozen=True, slots=True)
class ConfigurationWarning:
    """
    Non-fatal diagnostic produced while resolving the build request.
    Resolution always falls back to a safe value and continues.
    """

    level: Literal["info", "warning"]
    field: str
    message: str


class FetchFailure(BuildpackError):
    """
    Source archive could not be downloaded or unpacked. Never retried.
    """

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ExternalToolFailure(BuildpackError):
    """
    configure/compile exited nonzero (or could not be started)
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: int | None = None,
        output_tail: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.command = tuple(command)
        self.returncode = returncode
        self.output_tail = tuple(output_tail)


class CacheIOFailure(BuildpackError):
    """Filesystem error while restoring, storing or purging the cache"""
