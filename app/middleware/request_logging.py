from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import get_logger
from app.core.metrics import increment_requests_total

logger = get_logger(__name__)

_QUIET_PATHS = {"/api/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            increment_requests_total()
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            status_code = response.status_code if response is not None else 500
            path = request.url.path
            mode = getattr(getattr(request.app.state, "system", None), "mode", None)

            log = logger.debug if path in _QUIET_PATHS and status_code < 400 else logger.info
            log(
                "http.request",
                method=request.method,
                path=path,
                status_code=status_code,
                duration_ms=duration_ms,
                mode=mode.value if mode is not None else None,
            )
