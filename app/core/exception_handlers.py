"""Global exception handlers for consistent error responses.

Every error leaving the API has the same JSON shape::

    {"error": "<message>", "code": "<machine code>", "request_id": "<id>"}

Design:
- AppError subclasses → the status declared on the error class
- RequestValidationError (malformed body/query) → 400
- Starlette HTTPException → its own status, same body shape
- Unexpected Exception → generic 500 (safety net, no internals leaked)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import AppError, RateLimitAppError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


def error_body(message: str, code: str) -> dict:
    """Build the JSON error payload shared by every handler."""
    return {
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }


def _rate_limit_headers(exc: RateLimitAppError) -> dict[str, str]:
    details = exc.details or {}
    headers: dict[str, str] = {}
    if "retry_after" in details:
        headers["Retry-After"] = str(details["retry_after"])
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
    if "remaining" in details:
        headers["X-RateLimit-Remaining"] = str(details["remaining"])
    if "reset_at" in details:
        headers["X-RateLimit-Reset"] = str(details["reset_at"])
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors.

    The HTTP status comes from the error class (``http_status``). Server-side
    failures are logged at error level, client faults at warning level.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the error payload.
    """
    status_code = exc.http_status
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    headers = None
    if isinstance(exc, RateLimitAppError):
        headers = _rate_limit_headers(exc) or None

    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.message, exc.code),
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies/params as 400 with a readable message."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
    else:
        message = "Invalid request body"

    logger.warning(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "request_method": request.method,
            "error_count": len(errors),
        },
    )
    return JSONResponse(
        status_code=400,
        content=error_body(message, "invalid_request"),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Keep framework-raised HTTP errors (404 route, 405 method) in our shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), f"http_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message, so no
    stack traces or driver messages reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=error_body(
            "An unexpected error occurred. Please try again later.",
            "internal_server_error",
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
