"""Orchestrator configuration."""

from __future__ import annotations

import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OrchestratorSettings(BaseSettings):
    """Settings shared by every orchestrated project."""

    model_config = SettingsConfigDict(
        env_prefix="LAUNCHPAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    npm_path: str = "npm"
    git_path: str = "git"
    workspace_root: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    cache_dir: Path = Field(default_factory=lambda: Path.home() / ".cache" / "launchpad" / "repos")
    repo_host: str = "https://github.com"

    readiness_timeout_seconds: float = 60.0
    readiness_interval_seconds: float = 0.5
    readiness_scheme: Literal["http", "https"] = "http"
    clone_timeout_seconds: float | None = None
    install_timeout_seconds: float | None = None
    stop_grace_seconds: float = 10.0

    port_range_min: int = 3000
    port_range_max: int = 9000

    db_path: Path = Path(".launchpad/launchpad.db")
    log_level: str = "INFO"


@lru_cache
def get_settings() -> OrchestratorSettings:
    """Return the cached settings instance."""
    return OrchestratorSettings()
