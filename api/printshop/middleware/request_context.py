"""Request context middleware."""

import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Store caller identity on the request and log each request."""

    async def dispatch(self, request: Request, call_next):
        """Process request and add caller context."""
        request.state.organization_id = request.headers.get("X-Organization-ID")
        request.state.user_id = request.headers.get("X-User-ID")

        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({elapsed_ms:.1f} ms, org={request.state.organization_id})"
        )
        return response
