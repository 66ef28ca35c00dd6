"""
Request logging middleware.

One line per request: method, path, status, duration, caller, client.
Link and merge writes are logged at INFO so they leave an audit trail;
4xx and slow requests warn, 5xx errors.
"""
import logging
import os
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("linkage_api")

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())

SLOW_REQUEST_MS = float(os.environ.get("SLOW_REQUEST_MS", "3000"))


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        msg = (
            f"{request.method} {request.url.path} "
            f"status={response.status_code} "
            f"duration={duration_ms}ms "
            f"user={getattr(request.state, 'user', '-')} "
            f"client={_client_ip(request)}"
        )

        if response.status_code >= 500:
            logger.error(msg)
        elif response.status_code >= 400 or duration_ms > SLOW_REQUEST_MS:
            logger.warning(msg)
        else:
            logger.info(msg)

        return response
