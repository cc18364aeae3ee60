"""Application configuration using pydantic-settings."""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from resale_scout.analysis.models import AnalysisConfig

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "resale-scout"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Database (SQLite for local dev, PostgreSQL for prod)
    database_url: str = "sqlite+aiosqlite:///./resale_scout.db"

    # Frontend
    frontend_url: str = "http://localhost:3000"

    # API
    api_prefix: str = "/api"

    # Analysis rules (JSON file with an AnalysisConfig payload; defaults if unset)
    analysis_config_file: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_analysis_config(path: str | Path | None) -> AnalysisConfig:
    """Load business rules from a JSON file, or the defaults when path is None.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the payload is not a valid AnalysisConfig
    """
    if path is None:
        return AnalysisConfig()
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    logger.info(f"Loaded analysis rules from {path}")
    return AnalysisConfig.model_validate(data)


class SettingsConfigSource:
    """AnalysisConfigSource reading the rules file named in settings.

    The file is re-read on every load so operators can retune thresholds
    without restarting.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def load(self) -> AnalysisConfig:
        return load_analysis_config(self.settings.analysis_config_file)
