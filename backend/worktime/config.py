from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Worktime Ledger"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./worktime.db"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # External public-holiday feed; {region} and {year} are substituted.
    holiday_api_url: str = "https://www.spiketime.de/feiertagapi/feiertage/{region}/{year}"
    holiday_region: str = "BY"
    holiday_api_timeout_seconds: float = 10.0

    # Work time account limits used for balance status reporting.
    max_plus_minutes: int = 50 * 60
    max_minus_minutes: int = 20 * 60


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
