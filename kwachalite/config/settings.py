"""
Configuration Management for KwachaLite

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_CURRENCIES = (
    "USD",
    "EUR",
    "GBP",
    "JPY",
    "INR",
    "MWK",
    "ZAR",
    "KES",
    "NGN",
    "GHS",
)


class StoreSettings(BaseSettings):
    """Local persisted store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KWACHALITE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".kwachalite"),
        description="Directory holding one JSON file per local storage key"
    )
    seed_default_categories: bool = Field(
        default=True,
        description="Seed the default category set when no saved categories exist"
    )


class SyncSettings(BaseSettings):
    """Sync queue, worker and status observer configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    retry_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        le=3600,
        description="Timer tick between drain attempts when nothing wakes the worker"
    )
    status_poll_seconds: float = Field(
        default=1.0,
        gt=0,
        le=60,
        description="How often status observers re-read the persisted queue"
    )
    probe_connectivity: bool = Field(
        default=True,
        description="Ping the backend on each tick to detect online/offline transitions"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    worksheet_prefix: str = Field(
        default="",
        description="Optional prefix for per-collection worksheet names"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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
    app_name: str = Field(
        default="KwachaLite",
        description="Display name"
    )

    # Preferences
    default_currency: str = Field(
        default="USD",
        description="Currency code used until the user picks one"
    )

    # Validation thresholds
    max_amount: float = Field(
        default=100000000.0,
        gt=0,
        description="Amount above which records are flagged for review"
    )
    audit_history_size: int = Field(
        default=500,
        ge=10,
        le=100000,
        description="How many audit events are kept in memory"
    )

    @field_validator('default_currency')
    @classmethod
    def validate_default_currency(cls, v: str) -> str:
        code = v.strip().upper()
        if code not in SUPPORTED_CURRENCIES:
            raise ValueError(
                f"Unsupported currency: {v}. Supported: {', '.join(SUPPORTED_CURRENCIES)}"
            )
        return code


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
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("store", "sync", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
