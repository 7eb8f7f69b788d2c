"""
Centralized application settings via pydantic-settings.

All configuration is loaded from environment variables with development
defaults. Production deployments set ENVIRONMENT=production together with
DATABASE_URL and DATABASE_AUTH_TOKEN via .env file or container environment.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_DEV_DB_PATH = PROJECT_ROOT / "vehicles.db"


class Settings(BaseSettings):
    """Application configuration with env-var binding."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Runtime --
    # Only the exact value "production" selects the remote backend.
    environment: str = "development"

    # -- Remote database --
    database_url: str | None = None
    database_auth_token: str | None = None

    # -- Embedded database --
    dev_db_path: Path = DEFAULT_DEV_DB_PATH

    # -- Logging --
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return not self.is_production


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return a cached singleton Settings instance."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings()
    return _settings
