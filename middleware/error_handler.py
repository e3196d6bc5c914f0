from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from dependencies.monitoring import get_monitoring

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    request_id: str
    timestamp: str
    status: int
    error: str
    message: str
    path: str
    trace_id: str | None = None


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class AppBaseException(Exception):
    """Base for application errors that map onto a structured response."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    # False for expected server-side states that should not become Sentry events.
    reportable: bool = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ServiceUnavailableException(AppBaseException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "SERVICE_UNAVAILABLE"
    reportable = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _incoming_request_id(request: Request) -> str:
    return (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or _incoming_request_id(request)


def _error_response(request: Request, http_status: int, error_code: str, message: str) -> JSONResponse:
    request_id = _request_id(request)
    body = ErrorResponse(
        request_id=request_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        status=http_status,
        error=error_code,
        message=message,
        path=request.url.path,
        trace_id=request.headers.get("sentry-trace") or request.headers.get("traceparent"),
    )
    return JSONResponse(
        status_code=http_status,
        content=body.model_dump(),
        headers={"X-Request-ID": request_id},
    )


def _log(request: Request, exc: Exception, level: int) -> None:
    logger.log(
        level,
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc,
        exc_info=exc if level >= logging.ERROR else None,
        extra={"request_id": _request_id(request)},
    )


def _report(request: Request, exc: Exception) -> None:
    """Send a server-side error to the monitoring client held by the app."""
    try:
        get_monitoring(request).capture_exception(exc)
    except Exception as report_exc:
        logger.warning("Failed to report exception to monitoring: %s", report_exc)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def _handle_app_exception(request: Request, exc: AppBaseException) -> JSONResponse:
    server_error = exc.http_status >= 500
    _log(request, exc, logging.ERROR if server_error and exc.reportable else logging.WARNING)
    if server_error and exc.reportable:
        _report(request, exc)
    return _error_response(request, exc.http_status, exc.error_code, exc.message)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    _log(request, exc, logging.WARNING)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(request, exc.status_code, f"HTTP_{exc.status_code}", message)


async def _handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    _log(request, exc, logging.ERROR)
    _report(request, exc)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppBaseException, _handle_app_exception)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unhandled_exception)

    logger.debug("Exception handlers registered")


async def request_id_middleware(request: Request, call_next):
    """Stamp every request with an ID and echo it back in `X-Request-ID`."""
    request.state.request_id = _incoming_request_id(request)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response
