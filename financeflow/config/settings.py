"""
Configuration Management for FinanceFlow

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each backend (Google Sheets, local storage, the legacy HTTP service) gets
its own settings class with its own env prefix, so a partially configured
install (e.g. no Google credentials) still runs in local-only mode.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Remote store configuration (one worksheet per table)."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets workbook holding the tables"
    )
    worksheet_prefix: str = Field(
        default="",
        description="Prefix for table worksheet names (e.g. 'dev_')"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before signing in."
            )
        return v


class LocalStorageSettings(BaseSettings):
    """On-device key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORAGE_",
        extra="ignore"
    )

    data_dir: str = Field(
        default="data",
        description="Directory holding one JSON file per storage key"
    )
    key_prefix: str = Field(
        default="financeflow_",
        description="Prefix applied to every storage key"
    )


class LegacyApiSettings(BaseSettings):
    """Legacy local HTTP service for capital divisions."""

    model_config = SettingsConfigDict(
        env_prefix="LEGACY_API_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=False,
        description="Send best-effort division writes to the legacy service when signed out"
    )
    base_url: str = Field(
        default="http://localhost:3001",
        description="Base URL the client posts to"
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Client request timeout"
    )
    host: str = Field(
        default="127.0.0.1",
        description="Interface the server binds to"
    )
    port: int = Field(
        default=3001,
        ge=1,
        le=65535,
        description="Port the server listens on"
    )
    data_file: str = Field(
        default="data/capital-divisions.json",
        description="File the server persists divisions to"
    )


class SyncSettings(BaseSettings):
    """Synchronization controller tuning."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        extra="ignore"
    )

    retry_queue_size: int = Field(
        default=50,
        ge=1,
        description="Maximum number of failed remote writes kept for retry"
    )
    max_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Replays of a failed write before it is dropped"
    )
    months_back: int = Field(
        default=6,
        ge=1,
        le=36,
        description="Months shown in the monthly series"
    )
    recent_activity_limit: int = Field(
        default=5,
        ge=1,
        description="Transactions shown in recent activity"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structlog's stdlib backend"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def local_storage(self) -> LocalStorageSettings:
        return LocalStorageSettings()

    @property
    def legacy_api(self) -> LegacyApiSettings:
        return LegacyApiSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Google Sheets being invalid only means remote sync is unavailable.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "local_storage", "legacy_api", "sync", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
