"""
Application settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "renovo.db"

    # Connections held open to the ledger file
    pool_size: int = 5
    busy_timeout: int = 30000  # ms
    journal_mode: Literal["WAL", "DELETE", "TRUNCATE", "MEMORY"] = "WAL"
    synchronous: Literal["OFF", "NORMAL", "FULL"] = "NORMAL"

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    def pragmas(self) -> list[str]:
        """PRAGMA statements run on every new ledger connection."""
        return [
            f"PRAGMA journal_mode={self.journal_mode}",
            f"PRAGMA synchronous={self.synchronous}",
            f"PRAGMA busy_timeout={self.busy_timeout}",
            "PRAGMA foreign_keys=ON",
        ]


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100


class InvoicingSettings(BaseSettings):
    """Invoice numbering and defaults."""

    model_config = SettingsConfigDict(env_prefix="INVOICE_")

    number_prefix: str = "INV"
    number_padding: int = 3
    number_retry_attempts: int = 3

    # Reload-and-reapply attempts after a version conflict
    write_retry_attempts: int = 3

    default_currency: str = "USD"
    default_payment_terms: str = "net-30"

    # Dashboard look-back window
    dashboard_days: int = 30


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Renovo Invoice Ledger"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # Unset means console output in development and JSON elsewhere
    log_format: Literal["console", "json"] | None = None

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: APISettings = Field(default_factory=APISettings)
    invoicing: InvoicingSettings = Field(default_factory=InvoicingSettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        if isinstance(v, dict):
            settings = StorageSettings(**v)
        else:
            settings = v or StorageSettings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
