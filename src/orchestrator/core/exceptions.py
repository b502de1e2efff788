"""Exception handlers with request_id in responses."""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.orchestrator.core.logging import get_logger
from src.orchestrator.services.exceptions import (
    AgentInstanceConflict,
    ConcurrencyConflict,
    InvalidTransition,
    JobNotRetryable,
    NotFound,
    ProvisioningError,
    RetryLimitExceeded,
)

logger = get_logger(__name__)

PROVISIONING_ERROR_STATUS: dict[type[ProvisioningError], int] = {
    ConcurrencyConflict: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    RetryLimitExceeded: status.HTTP_409_CONFLICT,
    JobNotRetryable: status.HTTP_409_CONFLICT,
    AgentInstanceConflict: status.HTTP_409_CONFLICT,
}


def status_code_for(exc: ProvisioningError) -> int:
    for exc_type in type(exc).__mro__:
        if exc_type in PROVISIONING_ERROR_STATUS:
            return PROVISIONING_ERROR_STATUS[exc_type]
    return status.HTTP_409_CONFLICT


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=exc.headers,
        )

    @app.exception_handler(ProvisioningError)
    async def provisioning_exception_handler(
        request: Request, exc: ProvisioningError
    ) -> JSONResponse:
        status_code = status_code_for(exc)
        logger.info(
            "provisioning_request_rejected",
            error_type=type(exc).__name__,
            status_code=status_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": str(exc),
                "error": type(exc).__name__,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
