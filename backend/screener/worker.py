"""Moderation worker process.

Run with `python -m screener.worker`.
"""

import asyncio
import logging
import signal

from screener.core.config import settings
from screener.core.logging import setup_logging
from screener.core.tracing import setup_tracing, shutdown_tracing
from screener.modules.classifier.client import get_classifier_client
from screener.modules.flag.service import flag_service_scope
from screener.modules.queue.broker import get_moderation_queue
from screener.modules.queue.content import TableContentLookup
from screener.modules.queue.worker import ModerationWorker, ModerationWorkerPool

logger = logging.getLogger(__name__)


def build_pool() -> ModerationWorkerPool:
    queue = get_moderation_queue()
    worker = ModerationWorker(
        queue=queue,
        classifier=get_classifier_client(),
        flag_store_scope=flag_service_scope,
        content_lookup=TableContentLookup(),
    )
    return ModerationWorkerPool(worker, queue)


async def run() -> None:
    pool = build_pool()
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await pool.start()
    try:
        await stop.wait()
    finally:
        await pool.stop()
        await get_classifier_client().close()
        await pool.queue.close()


def main() -> None:
    setup_logging(level="INFO" if not settings.DEBUG else "DEBUG")
    setup_tracing(
        service_name=f"{settings.PROJECT_NAME} worker",
        service_version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        otlp_endpoint=settings.OTLP_ENDPOINT,
    )
    logger.info(
        "Starting moderation worker",
        extra={"concurrency": settings.MODERATION_WORKER_CONCURRENCY, "fail_open": settings.MODERATION_FAIL_OPEN},
    )
    try:
        asyncio.run(run())
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
