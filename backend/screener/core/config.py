"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
No sensitive values should be hardcoded here.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "Content Screener API"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./screener.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Security
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # CORS
    CORS_ORIGINS: list[str] = []

    # Celery (falls back to REDIS_URL when empty)
    CELERY_BROKER_URL: str = ""
    CELERY_RESULT_BACKEND: str = ""

    # Tracing
    OTLP_ENDPOINT: Optional[str] = None

    # Classifier
    # CLASSIFIER_PROVIDER: native, google_nl, perspective
    CLASSIFIER_URL: str = "http://localhost:8080/v1/analyze"
    CLASSIFIER_API_KEY: str = ""
    CLASSIFIER_PROVIDER: str = "native"
    MODERATION_ANALYSIS_TIMEOUT_SECONDS: float = 2.0
    MODERATION_MAX_TEXT_LENGTH: int = 10000

    # Decision policy
    MODERATION_CATEGORY_THRESHOLD: float = 0.70
    MODERATION_NEGATIVE_SENTIMENT_THRESHOLD: float = -0.60
    MODERATION_SUPPORTING_CATEGORY_THRESHOLD: float = 0.40

    # Moderation queue and worker pool
    # MODERATION_QUEUE_BACKEND: redis, memory
    MODERATION_QUEUE_BACKEND: str = "redis"
    MODERATION_QUEUE_NAME: str = "moderation"
    MODERATION_WORKER_CONCURRENCY: int = 5
    MODERATION_MAX_ATTEMPTS: int = 5
    MODERATION_RETRY_BASE_DELAY_SECONDS: float = 2.0
    MODERATION_RETRY_MAX_DELAY_SECONDS: float = 60.0
    MODERATION_LOCK_TIMEOUT_SECONDS: int = 30
    MODERATION_DEQUEUE_TIMEOUT_SECONDS: int = 1
    MODERATION_FAIL_OPEN: bool = True

    # Content lookup (tables owned by the CRUD layer)
    MODERATION_COMMENT_TABLE: str = "comments"
    MODERATION_REVIEW_TABLE: str = "reviews"

    # Email (for notifications)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = ""
    SMTP_TLS: bool = True
    NOTIFICATION_MAX_ATTEMPTS: int = 3
    NOTIFICATION_RETRY_BASE_DELAY_SECONDS: float = 1.0

    # Stats
    STATS_CACHE_TTL_SECONDS: float = 5.0
    STATS_RECENT_LIMIT: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
