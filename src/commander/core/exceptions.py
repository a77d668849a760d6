"""Exception handlers with request_id in responses."""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.commander.core.errors import (
    CommanderError,
    ConflictError,
    InvalidPathError,
    InvalidStateError,
    NotFoundError,
    ScanIOError,
    ShuttingDownError,
    StoreError,
    SyncInProgressError,
)
from src.commander.core.logging import get_logger

logger = get_logger(__name__)

ERROR_STATUS_CODES: dict[type[CommanderError], int] = {
    ScanIOError: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvalidPathError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    SyncInProgressError: status.HTTP_409_CONFLICT,
    StoreError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ShuttingDownError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: CommanderError) -> int:
    """Resolve the HTTP status for a domain error, walking the class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(CommanderError)
    async def commander_error_handler(request: Request, exc: CommanderError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("Registry operation failed", code=exc.code, error=exc.message)
        return JSONResponse(
            status_code=status_code,
            content={**exc.to_dict(), "request_id": correlation_id.get()},
        )

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
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
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
