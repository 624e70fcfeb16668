"""Application configuration"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "TaskFlow API"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Database
    data_dir: Path = Path("/app/data")
    database_in_memory: bool = False

    # Broadcast
    broadcast_backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379"

    # Integrations
    slack_webhook_url: Optional[str] = None
    jira_site_url: Optional[str] = None
    jira_access_token: Optional[str] = None
    jira_project_key: str = "TASK"
    webhook_timeout: float = 10.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def database_path(self) -> Path:
        return self.data_dir / "db" / "taskflow.json"

    @property
    def allowed_origins(self) -> list:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def validate_settings(settings: Settings) -> list:
    """Return configuration problems worth warning about at startup"""
    errors = []

    if settings.broadcast_backend not in ("memory", "redis"):
        errors.append(f"BROADCAST_BACKEND must be 'memory' or 'redis', got '{settings.broadcast_backend}'")

    if bool(settings.jira_site_url) != bool(settings.jira_access_token):
        errors.append("JIRA_SITE_URL and JIRA_ACCESS_TOKEN must be set together")

    return errors


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    settings = Settings()
    for error in validate_settings(settings):
        logger.warning(f"Config warning: {error}")
    return settings
