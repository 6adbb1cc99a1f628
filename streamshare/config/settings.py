"""
Configuration Management for StreamShare

Settings come from environment variables or a .env file, validated by
pydantic-settings.

All configuration is centralized here so every external dependency
(the storage backend and its credentials) is visible in one place and
validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Supabase (PostgREST) storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Project URL, e.g. https://<ref>.supabase.co"
    )
    key: str = Field(
        ...,
        description="Publishable or service role API key"
    )

    # Table names
    members_table: str = Field(
        default="members",
        description="Table holding household members"
    )
    services_table: str = Field(
        default="services",
        description="Table holding subscriptions"
    )
    payments_table: str = Field(
        default="payments",
        description="Table holding monthly payments"
    )

    @field_validator('url', 'key')
    @classmethod
    def strip_and_require(cls, v: str) -> str:
        """Reject blank values and trailing whitespace copied from dashboards."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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

    # Worksheet names within the spreadsheet
    members_sheet_name: str = Field(
        default="Members",
        description="Name of the sheet for members"
    )
    services_sheet_name: str = Field(
        default="Services",
        description="Name of the sheet for services"
    )
    payments_sheet_name: str = Field(
        default="Payments",
        description="Name of the sheet for payments"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file only warns; it may be mounted after startup."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Settings that apply whichever backend is in use.

    Unprefixed: LOG_LEVEL, STORAGE_BACKEND, CURRENCY_SYMBOL, ...
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
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )

    # Storage
    storage_backend: str = Field(
        default="supabase",
        pattern="^(supabase|google_sheets|memory)$",
        description="Which storage backend to use"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        max_length=4,
        description="Symbol shown in front of amounts"
    )

    @field_validator('log_level', mode='before')
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


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

    # Sub-settings are loaded lazily so a missing backend section only
    # fails when that backend is actually used.

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    The process-wide Settings instance.

    Cached; tests call get_settings.cache_clear() after changing the
    environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try loading every settings section.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries with the failure message.
    """
    results = {}

    settings = get_settings()

    sections = {
        "supabase": lambda: settings.supabase,
        "google_sheets": lambda: settings.google_sheets,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
