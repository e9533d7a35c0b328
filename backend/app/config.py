"""
Symptom Journal Configuration
=============================
Centralized configuration management for all environments.
"""
from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache

from .models.analysis import PersistencePolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000
    project_name: str = "Symptom Journal Pattern Analysis"
    version: str = "0.1.0"

    # Database
    database_url: str = "sqlite+aiosqlite:///./symptom_journal.db"
    create_tables_on_startup: bool = True

    # Language model (Gemini). No key means augmentation is skipped.
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 30.0

    # Pattern analysis
    persistence_policy: PersistencePolicy = PersistencePolicy.BEST_EFFORT
    analysis_lookback_days: int = 365
    analysis_max_logs: int = 365
    analysis_recent_logs: int = 90

    # CORS
    cors_origins: list = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]


    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
