"""Runtime settings, read from ``OVERTIME_*`` environment variables or a .env file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    app_name: str = "Overtime Tracking API"
    data_path: Path = Field(default=Path("data/overtime.json"), description="JSON file backing the store")
    log_level: str = "INFO"
    geolocation_timeout_s: float = 7.0
    geolocation_grace_s: float = 0.2
    recheck_interval_s: int = 15
    busy_notice_after_s: int = 20
    max_hours_per_day: int = 12
    allowed_origins: str = Field(default="", description="Comma separated CORS origins, '*' for any")

    model_config = SettingsConfigDict(env_prefix="OVERTIME_", extra="ignore")

    @property
    def origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=get_settings_env_file())


def get_settings_env_file() -> Optional[str]:
    """Resolve environment-specific env file if it exists."""
    env = os.getenv("OVERTIME_ENV", "dev")
    env_file = BASE_DIR / f".env.{env}"
    default_file = BASE_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    if default_file.exists():
        return str(default_file)
    return None
