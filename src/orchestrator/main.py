from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware, correlation_id
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.orchestrator.api.v1.router import api_router
from src.orchestrator.core.config import get_settings
from src.orchestrator.core.db import dispose_engine
from src.orchestrator.core.exceptions import setup_exception_handlers
from src.orchestrator.core.health import setup_health_endpoint, setup_metrics
from src.orchestrator.core.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from src.orchestrator.core.shutdown import UNTRACKED_PATHS, request_tracker
from src.orchestrator.temporal.client import reset_temporal_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info("app_starting", app_name=settings.app_name, app_env=settings.app_env)

    yield

    # Let in-flight callbacks finish their transactions before closing the pool
    await request_tracker.start_shutdown()
    drained = await request_tracker.wait_for_drain(timeout=settings.shutdown_grace_period)
    if not drained:
        logger.warning(
            "shutdown_incomplete",
            in_flight=request_tracker.in_flight_count,
            grace_period_seconds=settings.shutdown_grace_period,
        )

    reset_temporal_client()
    await dispose_engine()
    logger.info("app_stopped")


OPENAPI_TAGS = [
    {"name": "provisioning", "description": "Provisioning jobs, retries and timeout sweeps"},
    {"name": "agents", "description": "Agent deployment and provisioning status"},
    {"name": "webhooks", "description": "Signed callbacks from the workflow runner"},
    {"name": "ops", "description": "Health and metrics"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Coordinates VM provisioning for customer AI agents",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)

    # Add logging context middleware
    @app.middleware("http")
    async def logging_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Bind request_id to log context for all requests."""
        clear_request_context()
        bind_request_context(correlation_id.get())
        try:
            return await call_next(request)
        finally:
            clear_request_context()

    # Add request tracking middleware for graceful shutdown
    @app.middleware("http")
    async def track_requests_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        async with request_tracker.track_request():
            return await call_next(request)

    # Added last so it is the outermost middleware and sets the id first
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(api_router)
    setup_metrics(app)
    setup_health_endpoint(app)

    return app


app = create_app()
