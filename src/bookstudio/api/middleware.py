import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("bookstudio.api.middleware")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        logger.info(f"Request: {request.method} {request.url.path}")
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Response: {request.method} {request.url.path} | Status: {response.status_code} "
            f"| {elapsed_ms:.0f}ms"
        )
        return response
