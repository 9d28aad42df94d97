"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/fireops"

    # Duty scheduling (wall-clock hours in `timezone`)
    timezone: str = "Africa/Accra"
    manual_deactivation_hour: int = 7
    auto_deactivation_hour: int = 8
    unit_sweep_hour: int = 8
    unit_sweep_minute: int = 0

    # Department whose on-duty unit responds to accepted alerts
    operations_department_name: str = "operations"

    # API settings
    api_prefix: str = "/api"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60
    rate_limit_enabled: bool = True

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
