"""
Logging Middleware - Request/Response logging
"""
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)

HEALTH_PATH_PREFIX = "/api/v1/health"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all requests and responses

    Logs method, path, status code and duration. Every response carries
    X-Process-Time (ms) and X-Request-ID; an incoming X-Request-ID is reused.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """Process and log request/response"""

        # Skip logging for health checks (too noisy)
        if request.url.path.startswith(HEALTH_PATH_PREFIX):
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        start_time = time.time()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        logger.info(
            f"→ {method} {path}",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "query_params": dict(request.query_params),
                "client": client_host,
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                f"✗ {method} {path} ERROR ({duration_ms}ms): {e}",
                extra={"request_id": request_id, "duration_ms": duration_ms},
                exc_info=True
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"← {method} {path} {response.status_code} ({duration_ms}ms)",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": duration_ms
            }
        )

        response.headers["X-Process-Time"] = str(duration_ms)
        response.headers["X-Request-ID"] = request_id
        return response
