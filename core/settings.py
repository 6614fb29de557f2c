"""
Centralized Settings Configuration

Uses Pydantic Settings to load configuration from environment variables
with validation and type coercion.
"""

from typing import Optional
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///predictor.db"

    # football-data.org provider
    football_data_base_url: str = "https://api.football-data.org/v4"
    football_data_api_key: Optional[SecretStr] = None

    # Resilience
    retry_max_attempts: int = 3
    retry_base_delay: float = 2.0
    retry_max_delay: float = 30.0
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: int = 60
    http_timeout: int = 30

    # Sync behaviour
    competition_sync_pause_seconds: float = 1.0
    results_lookback_days: int = 7

    # Gameweek window policy
    deadline_offset_minutes: int = 60  # deadline = first kickoff - offset
    window_duration_minutes: int = 120  # window end = last kickoff + duration

    # Scheduler
    scheduler_enabled: bool = True
    fixture_sync_interval_minutes: int = 360
    match_results_interval_minutes: int = 60
    initial_sync_delay_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    service_name: str = "predictor-league-engine"

    # Pipeline Auth
    pipeline_api_token: Optional[SecretStr] = None

    # HTTP
    cors_origins: list[str] = []  # JSON list in env, e.g. ["http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is either json or console."""
        lower_v = v.lower()
        if lower_v not in {"json", "console"}:
            raise ValueError("log_format must be 'json' or 'console'")
        return lower_v

    @field_validator("deadline_offset_minutes", "window_duration_minutes")
    @classmethod
    def validate_window_minutes(cls, v: int) -> int:
        """Gameweek window offsets cannot be negative."""
        if v < 0:
            raise ValueError("gameweek window offsets must be >= 0")
        return v


def get_settings() -> Settings:
    """
    Get application settings.

    This function creates a new Settings instance each time,
    allowing for testing with different configurations.
    """
    return Settings()


# Default settings instance for convenience
# Import this for quick access: from core.settings import settings
settings = Settings()
