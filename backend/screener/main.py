"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from screener.core.config import settings
from screener.core.exceptions import (
    AlreadyFlagged,
    Forbidden,
    InvalidTransition,
    ModerationError,
    NotFound,
    QueueUnavailable,
    ServiceUnavailable,
    ValidationError,
)
from screener.core.logging import setup_logging
from screener.core.metrics import get_content_type, get_metrics, set_app_info
from screener.core.middleware import (
    CorrelationIdMiddleware,
    MetricsMiddleware,
    RequestLoggingMiddleware,
    TracingMiddleware,
)
from screener.core.tracing import setup_tracing, shutdown_tracing
from screener.modules.classifier.client import get_classifier_client
from screener.modules.moderation.admin_router import router as admin_router
from screener.modules.moderation.router import router as moderation_router
from screener.modules.queue.broker import get_moderation_queue

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    AlreadyFlagged: status.HTTP_409_CONFLICT,
    ServiceUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    QueueUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await get_classifier_client().close()
    await get_moderation_queue().close()
    shutdown_tracing()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## Content Screener API

Screens comments and reviews for toxic content.

* **Preview check** - verdict for text before it is submitted
* **Submission screening** - asynchronous worker pool with retries and dead-letter
* **Admin review** - approve or reject flagged content, dashboard statistics
* **Notifications** - email owners when their content is flagged or reviewed

All endpoints except `/health` and `/metrics` require a JWT Bearer token.
    """,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "Health check endpoints"},
        {"name": "moderation", "description": "Preview checks, submissions, own flags and preferences"},
        {"name": "admin", "description": "Flag review, statistics and dead-letter inspection"},
    ],
)

setup_logging(
    level="INFO" if not settings.DEBUG else "DEBUG",
    json_format=True,
    include_stack_trace=True,
)

setup_tracing(
    service_name=settings.PROJECT_NAME,
    service_version=settings.VERSION,
    environment=settings.ENVIRONMENT,
    otlp_endpoint=settings.OTLP_ENDPOINT,
    enable_console_export=settings.DEBUG,
)

set_app_info(version=settings.VERSION, environment=settings.ENVIRONMENT)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(TracingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(MetricsMiddleware)


@app.exception_handler(ModerationError)
async def moderation_error_handler(request: Request, exc: ModerationError) -> JSONResponse:
    """Translate domain errors into HTTP responses."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics."""
    return Response(content=get_metrics(), media_type=get_content_type())


app.include_router(moderation_router, prefix=settings.API_V1_PREFIX)
app.include_router(admin_router, prefix=settings.API_V1_PREFIX)
