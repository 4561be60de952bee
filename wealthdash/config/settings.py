"""
Configuration Management for WealthDash

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini extraction / analysis oracle configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Optional: without a key the AI features degrade instead of failing
    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=8192,
        ge=256,
        le=65536,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )

    # Rate-limit retry policy
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per oracle call when rate limited"
    )
    retry_base_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="First backoff delay; doubles on every retry"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class StorageSettings(BaseSettings):
    """Local snapshot storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WEALTHDASH_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".wealthdash"),
        description="Directory holding the persisted snapshot and audit log"
    )
    # Bump whenever the snapshot schema changes; old data is discarded, not migrated
    storage_key: str = Field(
        default="wealthdash_data_user_v15",
        description="Key the ledger snapshot is stored under"
    )
    audit_log_name: str = Field(
        default="audit_log.jsonl",
        description="File name of the append-only audit log"
    )

    @field_validator('storage_key')
    @classmethod
    def validate_storage_key(cls, v: str) -> str:
        """Storage keys become file names, so keep them path-safe."""
        v = v.strip()
        if not v or any(sep in v for sep in ("/", "\\", "..")):
            raise ValueError(f"Invalid storage key: {v!r}")
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

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Standard library log level for structlog output"
    )

    # Display
    default_base_currency: str = Field(
        default="HKD",
        description="Currency totals are displayed in at startup"
    )
    insight_language: str = Field(
        default="Chinese (Simplified)",
        description="Language the AI commentary is written in"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum upload file size in MB"
    )
    supported_file_formats: str = Field(
        default="pdf,xlsx,xlsm,csv,jpg,jpeg,png,webp",
        description="Comma-separated list of importable file extensions"
    )
    max_document_pages: int = Field(
        default=3,
        ge=1,
        le=20,
        description="How many PDF pages are rasterized for the oracle"
    )
    render_scale: float = Field(
        default=2.0,
        gt=0.0,
        le=4.0,
        description="PDF render scale; 2.0 keeps text legible"
    )
    jpeg_quality: int = Field(
        default=80,
        ge=10,
        le=100,
        description="JPEG quality for rasterized pages"
    )

    # Import review thresholds
    large_amount_threshold: float = Field(
        default=10_000_000.0,
        description="Amounts above this are flagged for review"
    )

    @field_validator('default_base_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_file_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    try:
        gemini = settings.gemini
        results["gemini"] = gemini.is_configured
        if not gemini.is_configured:
            results["gemini_error"] = "GEMINI_API_KEY is not set; AI features are disabled"
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
