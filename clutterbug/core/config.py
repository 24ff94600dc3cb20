"""
Application configuration
"""
import os
import logging
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_env_file() -> Optional[str]:
    """
    Determine which .env file to use based on APP_ENV environment variable.

    Available environments:
    - local: Development/testing environment (.env.local), the default
    - prod: Production environment (.env.prod)

    :return: Path to the .env file to load, or None when it does not exist
    """
    app_env = os.getenv("APP_ENV", "local").lower().strip() or "local"

    valid_envs = ["local", "prod"]
    if app_env not in valid_envs:
        logger.warning(f"Invalid APP_ENV value '{app_env}', expected one of: {', '.join(valid_envs)}")
        return None

    env_file = f".env.{app_env}"
    if not os.path.exists(env_file):
        logger.info(f"No {env_file} found, using environment variables and defaults (APP_ENV={app_env})")
        return None

    logger.info(f"Loading configuration from {env_file} (APP_ENV={app_env})")
    return env_file


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./clutterbug.db"

    # Photo storage root (holds photos/ and thumbnails/)
    PHOTO_STORAGE_DIR: str = "./data"

    # Decoded images kept in memory (least recently used evicted first)
    PHOTO_CACHE_SIZE: int = 32
    THUMBNAIL_CACHE_SIZE: int = 256

    # API
    API_TITLE: str = "ClutterBug Inventory Service"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Hierarchical storage taxonomy, item catalog and photo storage"

    # Breadcrumb separator for container paths
    PATH_SEPARATOR: str = " → "

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=get_env_file(), extra='ignore')

    def log_config_summary(self):
        """Log configuration summary."""
        logger.info("=" * 70)
        logger.info(f"Configuration Summary (Environment: {os.getenv('APP_ENV', 'local')})")
        logger.info("=" * 70)
        logger.info(f"Database URL: {self.DATABASE_URL}")
        logger.info(f"Photo Storage: {self.PHOTO_STORAGE_DIR}")
        logger.info(f"Photo Cache: {self.PHOTO_CACHE_SIZE} originals, {self.THUMBNAIL_CACHE_SIZE} thumbnails")
        logger.info(f"Log Level: {self.LOG_LEVEL}")
        logger.info("=" * 70)


settings = Settings()
