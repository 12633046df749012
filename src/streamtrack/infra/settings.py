"""
Application settings for StreamTrack.

This module defines all configuration settings for StreamTrack using Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    return Path.home() / ".local" / "share" / "streamtrack"


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    # Storage
    data_dir: Path = Field(default_factory=_default_data_dir, alias="STREAMTRACK_DATA_DIR")
    db_filename: str = Field(default="data.db", alias="STREAMTRACK_DB_FILENAME")
    legacy_db_filename: str = Field(default="history.db", alias="STREAMTRACK_LEGACY_DB_FILENAME")
    echo_sql: bool = Field(default=False, alias="ECHO_SQL")

    # Schedule queue
    schedule_stale_hours: int = Field(default=24, gt=0, alias="SCHEDULE_STALE_HOURS")

    # Display window around "now"
    schedule_lookbehind_min: int = Field(default=15, gt=0, alias="SCHEDULE_LOOKBEHIND_MIN")
    schedule_lookahead_hours: int = Field(default=24, gt=0, alias="SCHEDULE_LOOKAHEAD_HOURS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    @property
    def schedule_stale_seconds(self) -> int:
        return self.schedule_stale_hours * 3600


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("STREAMTRACK_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)

    # 3) Walk up from this file to find nearest .env
    here = Path(__file__).resolve()
    for parent in here.parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)
    return None


# Global settings instance (load from best-effort .env discovery)
_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
