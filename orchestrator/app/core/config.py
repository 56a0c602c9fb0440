"""Application settings and environment configuration loading."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ORCHESTRATOR_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = ORCHESTRATOR_ROOT / ".env"


class Settings(BaseSettings):
    """Typed runtime configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        # Load `orchestrator/.env` regardless of current working directory.
        env_file=[DEFAULT_ENV_FILE, ".env"],
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "dev"
    cors_origins: str = ""

    # HTTP server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3001

    # Docker daemon
    docker_base_url: str = "unix:///var/run/docker.sock"
    docker_timeout_s: int = Field(default=60, ge=1)

    # Agent runtime
    agent_image: str = "ghcr.io/openclaw/openclaw:latest"
    config_root: Path = Path(tempfile.gettempdir()) / "instantclaw"
    gateway_port: int = 18789
    restart_policy: str = "unless-stopped"
    stop_timeout_s: int = Field(default=10, ge=0)
    reap_config_bundles: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"
    log_use_utc: bool = False

    @model_validator(mode="after")
    def _defaults(self) -> Self:
        if not self.agent_image.strip():
            raise ValueError("AGENT_IMAGE must be set and non-empty.")
        self.log_format = self.log_format.strip().lower() or "text"
        if self.log_format not in {"text", "json"}:
            raise ValueError("LOG_FORMAT must be one of: text, json.")
        return self


settings = Settings()
