"""Exponential backoff shared by the moderation worker pool and Celery tasks.

Attempts are counted from 1: `calculate_delay(n)` is the wait after the n-th
failure and `should_retry(n)` says whether an (n+1)-th attempt is allowed.
"""

import math
from dataclasses import dataclass

from celery import Task

from screener.core.config import settings


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 300.0
    backoff_multiplier: float = 2.0

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait after `attempt` failed, capped at max_delay."""
        exponent = max(attempt, 1) - 1
        return min(self.initial_delay * math.pow(self.backoff_multiplier, exponent), self.max_delay)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts


def moderation_retry_config() -> RetryConfig:
    """2s, 4s, 8s, 16s with the defaults; the fifth failure dead-letters."""
    return RetryConfig(
        max_attempts=settings.MODERATION_MAX_ATTEMPTS,
        initial_delay=settings.MODERATION_RETRY_BASE_DELAY_SECONDS,
        max_delay=settings.MODERATION_RETRY_MAX_DELAY_SECONDS,
    )


def notification_retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=settings.NOTIFICATION_MAX_ATTEMPTS,
        initial_delay=settings.NOTIFICATION_RETRY_BASE_DELAY_SECONDS,
        max_delay=60.0,
    )


RETRY_CONFIGS = {
    "moderation": moderation_retry_config(),
    "notification": notification_retry_config(),
    "default": RetryConfig(max_delay=60.0),
}


class BaseTaskWithRetry(Task):
    """Celery task base that retries with the backoff named by `retry_config_name`."""

    abstract = True
    retry_config_name: str = "default"

    @property
    def retry_config(self) -> RetryConfig:
        return RETRY_CONFIGS.get(self.retry_config_name, RETRY_CONFIGS["default"])

    def retry_with_backoff(self, exc: Exception, attempt: int) -> None:
        """Schedule the next attempt after `attempt` failed.

        Raises:
            Retry: always, when another attempt is allowed.
            MaxRetriesExceededError: when the budget is spent.
        """
        config = self.retry_config
        if not config.should_retry(attempt):
            raise self.MaxRetriesExceededError(
                f"{self.name}: gave up after {config.max_attempts} attempts"
            )
        raise self.retry(
            exc=exc,
            countdown=config.calculate_delay(attempt),
            max_retries=config.max_attempts,
        )
