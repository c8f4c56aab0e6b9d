"""Moderation queue module: brokers, retry policy and worker pool."""

from screener.modules.queue.retry import RETRY_CONFIGS, BaseTaskWithRetry, RetryConfig
from screener.modules.queue.schemas import DeadLetter, JobOutcome, ModerationJob

__all__ = [
    "RETRY_CONFIGS",
    "BaseTaskWithRetry",
    "RetryConfig",
    "DeadLetter",
    "JobOutcome",
    "ModerationJob",
]
