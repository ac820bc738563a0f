from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """migrascope global configuration."""

    model_config = SettingsConfigDict(env_prefix="MIGRASCOPE_", env_file=".env", env_file_encoding="utf-8")

    project_name: str = Field(default="Migration Dashboard")

    # Migration backend
    base_url: str = Field(default="http://localhost:8080", description="Root URL of the migration service")
    request_timeout: Optional[float] = Field(default=30.0, description="Per-request timeout in seconds; None = no limit")

    # Polling cadence (seconds)
    health_interval: float = Field(default=10.0, gt=0)
    status_interval: float = Field(default=15.0, gt=0)
    jobs_interval: float = Field(default=4.0, gt=0)
    logs_interval: float = Field(default=15.0, gt=0)
    logs_auto_refresh_interval: float = Field(default=3.0, gt=0, description="Cadence of the user-toggled log refresh")

    log_lines: int = Field(default=100, ge=1, description="Number of trailing log lines requested from the backend")

    # Local config cache; empty = keep it in memory only
    config_cache_path: str = Field(default="./data/migration_config.json")

    log_level: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    return Settings()
