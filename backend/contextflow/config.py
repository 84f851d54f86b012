"""
Application configuration
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "ContextFlow"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    # Database (MongoDB)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "contextflow"

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # GitHub
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_WEBHOOK_SECRET: Optional[str] = None
    GITHUB_REQUEST_TIMEOUT_SECONDS: float = 10.0
    PUBLIC_WEBHOOK_URL: str = "http://localhost:8000/api/webhook/github"
    FRONTEND_BASE_URL: str = "http://localhost:3000"

    # Manifests
    MANIFEST_FILENAME: str = "vibe.json"
    AUTO_UPDATE_MARKER: str = "[AUTO-UPDATE]"

    # Webhook rate limiting (fixed window per client)
    WEBHOOK_RATE_LIMIT: int = 60
    WEBHOOK_RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Health check
    HEALTH_CHECK_INTERVAL_HOURS: int = 6
    HEALTH_CHECK_MAX_WORKERS: int = 4
    CRON_SECRET: Optional[str] = None

    # Notifications
    SLACK_WEBHOOK_URL: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
