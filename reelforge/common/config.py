"""Configuration management."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from the environment (``REELFORGE_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="REELFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    log_level: str = "INFO"
    json_logs: bool = False

    # Output
    fps: int = Field(default=30, gt=0)
    width: int = Field(default=1920, gt=0)
    height: int = Field(default=1080, gt=0)
    end_card_seconds: float = Field(default=5.0, ge=0.0)

    # Provider registry
    registry_path: str | None = None

    # Retry / backoff
    max_retries: int = Field(default=2, ge=0)
    backoff_base_seconds: float = Field(default=1.0, ge=0.0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    backoff_max_seconds: float = Field(default=30.0, ge=0.0)

    # Polling
    poll_interval_seconds: float = Field(default=2.0, ge=0.0)
    task_deadline_seconds: float = Field(default=600.0, gt=0.0)

    # Worker pool (None = proportional to providers in use)
    pool_width: int | None = Field(default=None, gt=0)
    workers_per_provider: int = Field(default=2, gt=0)

    # Music ducking
    music_base_volume: float = Field(default=0.35, ge=0.0, le=1.0)
    music_duck_volume: float = Field(default=0.1, ge=0.0, le=1.0)
    duck_ramp_in_seconds: float = Field(default=0.3, ge=0.0)
    duck_ramp_out_seconds: float = Field(default=0.3, ge=0.0)

    # Quality feedback
    max_regenerations_per_scene: int = Field(default=2, ge=0)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
