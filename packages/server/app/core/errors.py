"""
Error taxonomy and the single JSON error envelope.

Every error response, whether raised by a service, by FastAPI's request
validation or by an unhandled exception, is rendered as::

    {"success": false, "statusCode": 400, "message": "...",
     "timestamp": "...", "errorMsg": "OPTIONAL_TAG"}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------

class AppError(HTTPException):
    """Base class for domain errors. ``error_msg`` is a machine-readable tag."""

    status: int = 500

    def __init__(self, message: str, *, error_msg: Optional[str] = None):
        super().__init__(status_code=self.status, detail=message)
        self.error_msg = error_msg


class InvalidInput(AppError):
    status = 400


class Unauthenticated(AppError):
    status = 401


class Forbidden(AppError):
    status = 403


class NotFound(AppError):
    status = 404


class Conflict(AppError):
    status = 409


class DependencyFailure(AppError):
    status = 503


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

def error_envelope(
    status_code: int, message: str, error_msg: Optional[str] = None
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "statusCode": status_code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if error_msg:
        body["errorMsg"] = error_msg
    return body


def _format_validation_error(err: dict[str, Any]) -> str:
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
    if loc:
        return f"{'.'.join(loc)}: {err.get('msg', 'invalid value')}"
    return err.get("msg", "invalid value")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code >= 500:
        log.error("http.error", path=request.url.path, status=exc.status_code, message=message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, message, getattr(exc, "error_msg", None)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(_format_validation_error(err) for err in exc.errors())
    return JSONResponse(status_code=400, content=error_envelope(400, message))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("http.unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content=error_envelope(500, "Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
