from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogFormat = Literal["json", "console"]


class Settings(BaseSettings):
    """
    Tool-level settings. These shape how the buildpack runs (logging, run
    reports, network timeouts), never what it builds.
    """

    model_config = SettingsConfigDict(
        env_prefix="NGINX_BUILDPACK_",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")
    run_root: Optional[Path] = Field(default=None)
    connect_timeout: float = Field(default=10.0, gt=0)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()
