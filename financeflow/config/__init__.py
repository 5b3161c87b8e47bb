"""Configuration package."""

from financeflow.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LegacyApiSettings,
    LocalStorageSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LegacyApiSettings",
    "LocalStorageSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
