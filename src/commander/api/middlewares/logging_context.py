"""Request-scoped logging context."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint
from structlog.contextvars import bind_contextvars

from src.commander.core.logging import bind_request_context, clear_request_context


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Bind request_id and route to the log context of every registry call."""
    clear_request_context()
    bind_request_context(correlation_id.get())
    bind_contextvars(http_method=request.method, http_path=request.url.path)
    try:
        return await call_next(request)
    finally:
        clear_request_context()
