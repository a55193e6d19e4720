"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain, routing and unexpected) and turn them into HTTP responses.

Design:
- AppError subclasses → plain-text message with the mapped status code
- UpstreamAppError → upstream status with its JSON body passed through
- Starlette HTTPException (404, 405) → plain-text detail
- Unexpected Exception → generic 500 (safety net)
"""

import json
import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import (
    AppError,
    ConfigurationAppError,
    LLMAppError,
    PayloadTooLargeAppError,
    RateLimitAppError,
    UpstreamAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An internal server error occurred."


def _status_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code."""
    if isinstance(exc, UpstreamAppError):
        return exc.status_code
    if isinstance(exc, RateLimitAppError):
        return 429
    if isinstance(exc, PayloadTooLargeAppError):
        return 413
    if isinstance(exc, (ConfigurationAppError, LLMAppError)):
        return 500
    return 400


async def app_error_handler(request: Request, exc: AppError) -> Response:
    """Handle domain application errors.

    Routes domain errors to HTTP status codes:
    - ValidationAppError → 400 Bad Request
    - PayloadTooLargeAppError → 413 Payload Too Large
    - RateLimitAppError → 429 Too Many Requests
    - ConfigurationAppError / LLMAppError → 500 Internal Server Error
    - UpstreamAppError → whatever the upstream answered

    The body is the error message as plain text, except for upstream errors
    whose JSON body is echoed so callers can tell "upstream rejected this"
    apart from "this server broke".

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        Response with the mapped status code.
    """
    status_code = _status_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    if isinstance(exc, UpstreamAppError):
        return Response(
            content=json.dumps(exc.body, separators=(",", ":"), ensure_ascii=False),
            status_code=status_code,
            media_type="application/json",
        )

    headers = exc.headers if isinstance(exc, RateLimitAppError) else None
    return PlainTextResponse(exc.message, status_code=status_code, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render routing errors (unknown path, wrong method) as plain text.

    Keeps the ``Allow`` header Starlette attaches to 405 responses.
    """
    return PlainTextResponse(
        str(exc.detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> Response:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        Plain-text 500 response with no implementation details.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return PlainTextResponse(GENERIC_ERROR_MESSAGE, status_code=500)


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from app.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
