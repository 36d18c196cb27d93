"""Configuration management using Pydantic Settings."""

from typing import ClassVar

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.shared.exceptions import ConfigError

# Singleton instance
_settings: "Settings | None" = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Database configuration
    db_host: str = "postgres"
    db_port: int = 5432
    db_name: str = "wakawars"
    db_user: str = "wakawars"
    db_password: str  # Required, no default
    db_pool_min_size: int = 2
    db_pool_max_size: int = 5

    # WakaTime provider
    wakatime_base_url: str = "https://wakatime.com/api/v1"
    wakatime_timeout_seconds: int = 15

    # Daily status sync
    enable_status_sync: bool = True
    daily_sync_interval_seconds: int = 300
    daily_cache_ttl_seconds: int = 300

    # Weekly rolling-range cache
    enable_weekly_cache: bool = True
    weekly_cache_interval_seconds: int = 1800
    weekly_cache_ttl_seconds: int = 1800
    weekly_range_key: str = "last_7_days"

    # Leaderboard presentation
    delta_threshold_seconds: int = 300
    podium_count: int = 3
    around_count: int = 1

    # Achievements backfill
    backfill_progress_every: int = 500
    backfill_retry_attempts: int = 6
    backfill_retry_base_delay_ms: int = 500
    backfill_retry_max_delay_ms: int = 5000

    # Application settings
    log_level: str = "INFO"
    app_version: str = "0.1.0"
    environment: str = "development"

    # Valid log levels
    VALID_LOG_LEVELS: ClassVar[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        v_upper = v.upper()
        if v_upper not in cls.VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level: {v}. Must be one of {', '.join(cls.VALID_LOG_LEVELS)}"
            )
        return v_upper

    @field_validator("wakatime_timeout_seconds")
    @classmethod
    def validate_provider_timeout(cls, v: int) -> int:
        """Validate provider timeout (1-120 seconds)."""
        if not 1 <= v <= 120:
            raise ConfigError(f"WakaTime timeout must be between 1 and 120 seconds, got {v}")
        return v

    @field_validator("daily_sync_interval_seconds")
    @classmethod
    def validate_daily_interval(cls, v: int) -> int:
        """Validate daily sync interval (30 seconds to 24 hours)."""
        if not 30 <= v <= 86400:
            raise ConfigError(f"Daily sync interval must be 30-86400 seconds, got {v}")
        return v

    @field_validator("weekly_cache_interval_seconds")
    @classmethod
    def validate_weekly_interval(cls, v: int) -> int:
        """Validate weekly cache interval (1 minute to 24 hours)."""
        if not 60 <= v <= 86400:
            raise ConfigError(f"Weekly cache interval must be 60-86400 seconds, got {v}")
        return v

    @field_validator("daily_cache_ttl_seconds", "weekly_cache_ttl_seconds")
    @classmethod
    def validate_cache_ttl(cls, v: int) -> int:
        """Validate cache TTL (0 disables caching, max 24 hours)."""
        if not 0 <= v <= 86400:
            raise ConfigError(f"Cache TTL must be 0-86400 seconds, got {v}")
        return v

    @field_validator("weekly_range_key")
    @classmethod
    def validate_range_key(cls, v: str) -> str:
        """Validate the rolling-range key is non-empty."""
        v = v.strip()
        if not v:
            raise ConfigError("Weekly range key must not be empty")
        return v

    @field_validator(
        "delta_threshold_seconds",
        "around_count",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate leaderboard tunables are non-negative."""
        if v < 0:
            raise ConfigError(f"Value must be non-negative, got {v}")
        return v

    @field_validator(
        "podium_count",
        "backfill_progress_every",
        "backfill_retry_attempts",
        "db_pool_min_size",
        "db_pool_max_size",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate counters are at least 1."""
        if v < 1:
            raise ConfigError(f"Value must be at least 1, got {v}")
        return v

    @field_validator("backfill_retry_base_delay_ms")
    @classmethod
    def validate_retry_base_delay(cls, v: int) -> int:
        """Validate backfill retry base delay (at least 100ms)."""
        if v < 100:
            raise ConfigError(f"Backfill retry base delay must be at least 100ms, got {v}")
        return v

    @model_validator(mode="after")
    def validate_retry_max_delay(self) -> "Settings":
        """Validate backfill max delay is not below the base delay."""
        if self.backfill_retry_max_delay_ms < self.backfill_retry_base_delay_ms:
            raise ConfigError(
                "Backfill retry max delay must be >= base delay "
                f"({self.backfill_retry_max_delay_ms} < {self.backfill_retry_base_delay_ms})"
            )
        return self

    @property
    def db_dsn_display(self) -> str:
        """Connection target without credentials, for logging.

        Returns:
            String like 'postgres:5432/wakawars'
        """
        return f"{self.db_host}:{self.db_port}/{self.db_name}"


def get_settings() -> Settings:
    """Get or create the global Settings instance (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
