"""Prometheus metrics for the moderation pipeline.

Exposed at GET /metrics by the API process.
"""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    multiprocess,
)

REGISTRY = CollectorRegistry()

# Multiprocess mode (e.g., gunicorn)
if "prometheus_multiproc_dir" in os.environ:
    multiprocess.MultiProcessCollector(REGISTRY)


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "content_screener_app",
    "Application information",
    registry=REGISTRY,
)


# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)


# ============================================
# Moderation Queue Metrics
# ============================================
MODERATION_JOBS_ENQUEUED_TOTAL = Counter(
    "moderation_jobs_enqueued_total",
    "Moderation jobs accepted by the queue",
    ["content_type"],
    registry=REGISTRY,
)

MODERATION_ENQUEUE_FAILURES_TOTAL = Counter(
    "moderation_enqueue_failures_total",
    "Content published without moderation because the queue was unreachable",
    registry=REGISTRY,
)

MODERATION_JOBS_PROCESSED_TOTAL = Counter(
    "moderation_jobs_processed_total",
    "Moderation jobs processed by outcome",
    ["outcome"],
    registry=REGISTRY,
)

MODERATION_JOB_RETRIES_TOTAL = Counter(
    "moderation_job_retries_total",
    "Moderation jobs rescheduled after a classifier outage",
    registry=REGISTRY,
)

MODERATION_DEAD_LETTER_TOTAL = Counter(
    "moderation_dead_letter_total",
    "Moderation jobs moved to the dead-letter channel",
    registry=REGISTRY,
)

MODERATION_WORKERS_BUSY = Gauge(
    "moderation_workers_busy",
    "Workers currently processing a job",
    registry=REGISTRY,
)


# ============================================
# Classifier Metrics
# ============================================
CLASSIFIER_DURATION_SECONDS = Histogram(
    "moderation_classifier_duration_seconds",
    "Classifier call duration in seconds",
    ["provider"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 3.0, 5.0],
    registry=REGISTRY,
)

CLASSIFIER_ERRORS_TOTAL = Counter(
    "moderation_classifier_errors_total",
    "Classifier call failures",
    ["error"],
    registry=REGISTRY,
)


# ============================================
# Flag Store Metrics
# ============================================
FLAGS_CREATED_TOTAL = Counter(
    "moderation_flags_created_total",
    "Flag records created",
    ["content_type"],
    registry=REGISTRY,
)

FLAG_TRANSITIONS_TOTAL = Counter(
    "moderation_flag_transitions_total",
    "Flag records resolved by an admin",
    ["status"],
    registry=REGISTRY,
)


# ============================================
# Notification Metrics
# ============================================
NOTIFICATIONS_TOTAL = Counter(
    "moderation_notifications_total",
    "Owner notifications by event and result",
    ["event", "result"],
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    """Generate latest metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def set_app_info(version: str, environment: str) -> None:
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })
