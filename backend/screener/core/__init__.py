"""Core module for configuration and utilities."""

from screener.core.celery_app import celery_app
from screener.core.config import settings
from screener.core.database import Base, get_db

__all__ = [
    "celery_app",
    "settings",
    "Base",
    "get_db",
]
