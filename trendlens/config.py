"""Configuration management using pydantic-settings."""

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    log_level: str = "INFO"

    # Analysis Configuration
    # "series" = signal line is a 9-period EMA of the MACD series
    # "single_point" = signal line computed from the latest MACD value only
    macd_signal_mode: Literal["series", "single_point"] = "series"
    suggestion_ttl_hours: int = 24

    # Default history window requested from data sources (days)
    history_days: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TRENDLENS_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts and entry points."""
    settings = get_settings()
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
