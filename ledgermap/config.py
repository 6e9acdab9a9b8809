"""
Application configuration using pydantic-settings.

Loads configuration from environment variables (prefixed ``LEDGERMAP_``)
with sensible defaults.
"""
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LEDGERMAP_",
        case_sensitive=False,
    )

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./ledgermap.db"

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # Taxonomy reference data
    taxonomy_path: Path = Path(__file__).parent.parent / "data" / "taxonomy.yaml"
    seed_taxonomy_on_startup: bool = True

    # Mapping engine
    bulk_apply_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    bulk_apply_mode: str = "best_effort"
    high_source_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    min_source_confidence: float = Field(default=0.7, ge=0.0, le=1.0)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
