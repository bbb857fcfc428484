"""Error types raised by the plans API and the handler that renders them.

Controllers raise an :class:`APIError` subclass; the handler installed by
:func:`register_exception_handlers` turns it into an ``ErrorResponse`` body
with the subclass's status code. Extra keyword arguments become ``context``.

Usage:
    from planner.errors import NotFoundError

    if not row:
        raise NotFoundError(detail="Plan not found", slug=slug)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """JSON body of every error raised through :class:`APIError`."""

    error: str
    detail: str | None = None
    error_code: str | None = None
    context: dict[str, Any] | None = None


class APIError(Exception):
    """Base class; subclasses only override the class attributes."""

    status_code: int = 500
    error: str = "internal_error"
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None, error_code: str | None = None, **context: Any) -> None:
        self.detail = detail or type(self).detail
        self.error_code = error_code
        self.context = context or None
        super().__init__(self.detail)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.error,
            detail=self.detail,
            error_code=self.error_code,
            context=self.context,
        )


class NotFoundError(APIError):
    """Unknown plan, response, day or block (404)."""

    status_code = 404
    error = "not_found"
    detail = "Resource not found"


class BadRequestError(APIError):
    """Request is well-formed but conflicts with the stored plan (400)."""

    status_code = 400
    error = "bad_request"
    detail = "Invalid request"


class UnauthorizedError(APIError):
    """No user id header on an owner-only operation (401)."""

    status_code = 401
    error = "unauthorized"
    detail = "Unauthorized"


class ForbiddenError(APIError):
    """Caller is not the plan owner (403)."""

    status_code = 403
    error = "forbidden"
    detail = "Forbidden"


class ServiceUnavailableError(APIError):
    status_code = 503
    error = "service_unavailable"
    detail = "Service temporarily unavailable"


class DatabaseError(APIError):
    """Write to PostgreSQL failed (500)."""

    status_code = 500
    error = "database_error"
    detail = "Database operation failed"


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    logger.warning(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.error,
        exc.detail,
    )
    body = exc.to_response().model_dump(exclude_none=True)
    return JSONResponse(status_code=exc.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
