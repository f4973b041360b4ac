"""Configuration package."""

from kwachalite.config.settings import (
    SUPPORTED_CURRENCIES,
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    StoreSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "SUPPORTED_CURRENCIES",
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "StoreSettings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
