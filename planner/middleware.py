import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from planner.config import get_settings


class HTTPLogMiddleware(BaseHTTPMiddleware):
    """Request start/end/duration lines on the ``planner.http`` logger."""

    def __init__(self, app, logger_name: str = "planner.http"):
        super().__init__(app)
        self._logger = logging.getLogger(logger_name)
        self._user_header = get_settings().auth.user_header

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        path = request.url.path
        method = request.method
        user = request.headers.get(self._user_header, "-")
        self._logger.debug("http.request start method=%s path=%s user=%s", method, path, user)
        try:
            response: Response = await call_next(request)
        except Exception as e:
            dur_ms = int((time.perf_counter() - start) * 1000)
            self._logger.warning("http.request error method=%s path=%s dur_ms=%s err=%r",
                                 method, path, dur_ms, e)
            raise
        dur_ms = int((time.perf_counter() - start) * 1000)
        self._logger.debug("http.request end method=%s path=%s status=%s dur_ms=%s",
                           method, path, response.status_code, dur_ms)
        return response
