"""Structured API errors and the FastAPI handlers that render them.

Every failure leaving a generated resource is an ``APIError`` rendered as::

    {"status": 403, "title": "Update not allowed", "detail": "...", "meta": {...}}

with the numeric status mirrored in the HTTP status line.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """An error that carries its own HTTP status and JSON:API style body.

    Attributes:
        title: Short human-readable summary, returned to the client
        status: HTTP status (400-599, anything else becomes 500)
        detail: Longer explanation for this occurrence
        code: Application-specific error code
        id: Unique identifier for this occurrence
        links: ``{"about": ..., "type": ...}`` links
        source: ``{"pointer": ..., "parameter": ..., "header": ...}``
        meta: Free-form extra information (``fields`` is copied here)
        disable_external_error_tracking: Keep this error out of error trackers
        error: The wrapped exception, if any
    """

    def __init__(
        self,
        title: str,
        status: int | None = None,
        *,
        detail: str | None = None,
        code: str | None = None,
        id: str | None = None,
        links: dict[str, str] | None = None,
        source: dict[str, str] | None = None,
        meta: dict[str, Any] | None = None,
        fields: dict[str, str] | None = None,
        disable_external_error_tracking: bool | None = None,
        error: BaseException | None = None,
    ):
        if status is None or status < 400 or status > 599:
            status = 500
        self.title = title
        self.status = status
        self.detail = detail
        self.code = code
        self.id = id
        self.links = links
        self.source = source
        self.meta = dict(meta) if meta else None
        if fields:
            self.meta = {**(self.meta or {}), "fields": fields}
        self.disable_external_error_tracking = disable_external_error_tracking
        self.error = error

        message = title
        if detail:
            message = f"{message}: {detail}"
        if error is not None:
            stack = "".join(traceback.format_exception(error))
            message = f"{message}\n{stack}"
        super().__init__(message)


class InvalidRequest(APIError):
    """400: malformed body, disallowed query, hook or validation failure."""

    def __init__(self, title: str, **kwargs: Any):
        super().__init__(title, 400, **kwargs)


class NotAllowed(APIError):
    """403: the requester may not perform this operation on this document."""

    def __init__(self, title: str, **kwargs: Any):
        super().__init__(title, 403, **kwargs)


class NotFound(APIError):
    """404: document or array entry absent."""

    def __init__(self, title: str, **kwargs: Any):
        super().__init__(title, 404, **kwargs)


class MethodDisabled(APIError):
    """405: the requester may not perform this operation on any document."""

    def __init__(self, title: str, **kwargs: Any):
        super().__init__(title, 405, **kwargs)


class ServerFault(APIError):
    """500: unsupported verb or an unclassified handler failure."""

    def __init__(self, title: str, **kwargs: Any):
        super().__init__(title, 500, **kwargs)


def is_api_error(error: Any) -> bool:
    return isinstance(error, APIError)


def get_disable_external_error_tracking(error: Any) -> bool | None:
    """Read the tracking flag from an APIError, or any object/dict carrying it."""
    if error is None or isinstance(error, (str, bytes, int, float, bool)):
        return None
    if isinstance(error, dict):
        return error.get("disable_external_error_tracking")
    return getattr(error, "disable_external_error_tracking", None)


def wrap_error(
    error: BaseException,
    title: str,
    status: int | None = 400,
) -> APIError:
    """Wrap an arbitrary exception, keeping its tracking flag."""
    return APIError(
        title,
        status,
        error=error,
        disable_external_error_tracking=get_disable_external_error_tracking(error),
    )


def get_api_error_body(error: APIError) -> dict[str, Any]:
    """Build the JSON body for an APIError, omitting unset members."""
    body: dict[str, Any] = {"status": error.status, "title": error.title}
    for key in ("code", "detail", "id", "links", "source", "meta"):
        value = getattr(error, key)
        if value is not None:
            body[key] = value
    return body


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status >= 500:
        if exc.disable_external_error_tracking:
            logger.info("API error %s on %s %s: %s", exc.status, request.method, request.url.path, exc)
        else:
            logger.error("API error %s on %s %s: %s", exc.status, request.method, request.url.path, exc)
    else:
        logger.debug("API error %s on %s %s: %s", exc.status, request.method, request.url.path, exc.title)
    return JSONResponse(status_code=exc.status, content=get_api_error_body(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    title = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status_code, "title": title},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "status": 400,
            "title": "Invalid request",
            "meta": {"errors": [str(e.get("msg", e)) for e in exc.errors()]},
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"status": 500, "title": "Internal Server Error"})


def install_error_handlers(app: FastAPI) -> None:
    """Register the handlers that render every failure as an error envelope."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
