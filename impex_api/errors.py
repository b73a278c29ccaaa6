"""
Error taxonomy and the exception handlers that render the JSON error envelope.

Every error response has the shape ``{"success": false, "error": ...}``.
Unclassified exceptions additionally carry ``stack`` (``null`` in production).
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from impex_api.config import Settings
from impex_api.rendering import render_not_found_page

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Client error with a known HTTP status and envelope message."""

    status_code = 400
    message: Any = "Bad request"

    def __init__(self, message: Any = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingFields(ApiError):
    status_code = 400


class InvalidStatus(ApiError):
    status_code = 400
    message = 'Status must be either "published" or "draft"'


class InvalidIdentifier(ApiError):
    status_code = 400
    message = "Invalid blog ID format"


class NotFound(ApiError):
    status_code = 404
    message = "Blog not found"


class ValidationFailed(ApiError):
    """Store-level field constraint violations, one message per field."""

    status_code = 400

    def __init__(self, messages: list[str]):
        super().__init__(list(messages))


class MailTransportError(Exception):
    """The mail relay was unreachable or rejected a message."""


class StartupError(Exception):
    """Fatal error while bringing the server up."""


def _envelope(error: Any, **extra: Any) -> dict:
    return {"success": False, "error": error, **extra}


def _format_validation_errors(exc: RequestValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        msg = err.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return messages


def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Install the envelope-producing exception handlers on ``app``."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        logger.info(
            "%s %s -> %d %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=_envelope(exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400, content=_envelope(_format_validation_errors(exc))
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods both fall through to the 404 page.
        if exc.status_code in (404, 405):
            return HTMLResponse(
                render_not_found_page(url=str(request.url.path)), status_code=404
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unclassified(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        status_code = getattr(exc, "status_code", None)
        if not isinstance(status_code, int) or status_code < 400:
            status_code = 500
        stack = None
        if not settings.is_production:
            stack = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return JSONResponse(
            status_code=status_code,
            content=_envelope(str(exc) or "Server Error", stack=stack),
        )
