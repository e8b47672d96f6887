"""
Request logging middleware

Tags every request with a correlation ID (taken from X-Correlation-ID or
generated), stores it on request.state for the error handlers and echoes it
in the response. Log level follows the outcome: 5xx at ERROR, 4xx at
WARNING, the rest at INFO. Health probes are logged at DEBUG only.
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import logging
import time
import uuid

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
FORWARDED_FOR_HEADER = "X-Forwarded-For"
QUIET_PATHS = frozenset({"/health"})


def client_ip(request: Request):
    """First address of X-Forwarded-For, else the socket peer"""
    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        path = request.url.path
        context = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": path,
            "client_ip": client_ip(request),
        }

        logger.log(
            logging.DEBUG if path in QUIET_PATHS else logging.INFO,
            f"Request started: {request.method} {path}",
            extra=context,
        )
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.exception(
                f"Request failed: {request.method} {path} after {duration_ms}ms",
                extra={**context, "duration_ms": duration_ms},
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.log(
            level_for(path, response.status_code),
            f"Request completed: {request.method} {path} - {response.status_code}",
            extra={**context, "status_code": response.status_code, "duration_ms": duration_ms},
        )

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
