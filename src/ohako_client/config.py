"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    api_base_url: str
    state_dir: Path = Path("~/.ohako")
    http_timeout_seconds: float = 10.0
    notification_history: int = 20
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="OHAKO_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def resolved_state_dir(self) -> Path:
        """Return the state directory with ``~`` expanded."""
        return self.state_dir.expanduser()


def normalize_base_url(raw: str) -> str:
    """Strip trailing slashes so endpoint paths can be appended."""
    return raw.strip().rstrip("/")
