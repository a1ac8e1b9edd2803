"""
Application configuration with environment-specific settings.

Supported environment files (loaded in order of precedence):
1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
2. .env (fallback)

Required for production:
- OWNER_INITIALS (scores are attributed to the local player by initials)
"""
import os
import logging
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

# Get the project root directory (3 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment-specific configuration."""

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = ConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Allow extra fields from .env
    )

    # Application
    APP_NAME: str = "Pinball Scoreboard"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8010

    # Cabinet (VPin Studio + PinupPopper web API)
    CABINET_URL: str = "http://pinball.local"
    VPIN_STUDIO_PORT: int = 8089

    # Global leaderboard and table catalog
    VPIN_MANIA_URL: str = "https://www.vpin-mania.net/api/highscores/table"
    PINBALL_DB_URL: str = (
        "https://raw.githubusercontent.com/VirtualPinballSpreadsheet/vps-db/main/db/vpsdb.json"
    )

    # Local player
    OWNER_INITIALS: str = ""

    # Document storage
    DOCUMENT_PATH: str = str(PROJECT_ROOT / "data" / "scoreboard.json")

    # Scanning
    HTTP_TIMEOUT: float = 30.0
    SCAN_CONCURRENCY: int = 8
    PROGRESS_INTERVAL: float = 0.25  # seconds between progress updates
    SCAN_INTERVAL_MINUTES: int = 0  # 0 disables the scheduler
    RECENT_SCORE_DAYS: int = 3

    # CORS - comma-separated string for env var parsing
    CORS_ORIGINS_STR: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def VPIN_STUDIO_URL(self) -> str:
        return f"{self.CABINET_URL}:{self.VPIN_STUDIO_PORT}"

    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Get CORS origins with environment-aware defaults."""
        if self.CORS_ORIGINS_STR:
            origins = [o.strip() for o in self.CORS_ORIGINS_STR.split(",") if o.strip()]
            if origins:
                if self.is_production() and "*" in origins:
                    logger.warning(
                        "Wildcard CORS origins (*) are not allowed in production. "
                        "Please set explicit origins in CORS_ORIGINS_STR environment variable."
                    )
                    return []
                return origins

        if self.is_production():
            return []
        return [
            "http://localhost:3000",
            "http://localhost:8010",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8010",
        ]

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    def validate_required_settings(self) -> list[str]:
        """
        Validate that required settings are present for the current environment.

        Returns:
            List of missing setting names (empty if all present)
        """
        missing = []

        if not self.OWNER_INITIALS.strip():
            missing.append("OWNER_INITIALS")

        if self.SCAN_CONCURRENCY < 1:
            missing.append("SCAN_CONCURRENCY")

        return missing


def _load_env_file() -> Path:
    """
    Load the appropriate environment file based on ENVIRONMENT variable.

    Loads in order of precedence:
    1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
    2. .env (fallback)
    """
    environment = os.getenv("ENVIRONMENT", "development")

    env_file = PROJECT_ROOT / f".env.{environment}"
    if env_file.exists():
        logger.info(f"Loading environment from {env_file.name}")
        return env_file

    default_env = PROJECT_ROOT / ".env"
    if default_env.exists():
        logger.info(f"Loading environment from .env (environment: {environment})")
        return default_env

    logger.warning(f"No environment file found for '{environment}' (checked .env.{environment}, .env)")
    return default_env


# Auto-detect and load environment file
_env_file = _load_env_file()


class _SettingsWithEnvFile(Settings):
    model_config = ConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = _SettingsWithEnvFile()

# Validate settings on startup
missing_settings = settings.validate_required_settings()
if missing_settings:
    logger.warning(f"Missing required settings for {settings.ENVIRONMENT}: {', '.join(missing_settings)}")
    if settings.is_production():
        raise ValueError(
            f"Cannot start in production with missing settings: {', '.join(missing_settings)}. "
            f"Please set these environment variables in .env.production"
        )
