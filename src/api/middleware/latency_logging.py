"""Request latency logging."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000
QUIET_PATHS = frozenset({"/health", "/health/ready"})


def log_level_for(status_code: int, latency_ms: float, quiet: bool = False) -> int:
    """Pick the log level for a finished request.

    Server errors and very slow requests are errors, slow requests and
    client errors are warnings. Probe paths log at debug.
    """
    if quiet:
        return logging.DEBUG
    if status_code >= 500 or latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
        return logging.ERROR
    if status_code >= 400 or latency_ms > SLOW_REQUEST_THRESHOLD_MS:
        return logging.WARNING
    return logging.INFO


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, path, status and latency for every request."""
    start_time = time.perf_counter()
    response = None

    try:
        response = await call_next(request)
        return response
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response is not None else 500
        path = request.url.path

        logger.log(
            log_level_for(status_code, latency_ms, quiet=path in QUIET_PATHS),
            "%s %s - %d - %.2fms",
            request.method,
            path,
            status_code,
            latency_ms,
            extra={"status_code": status_code, "latency_ms": round(latency_ms, 2)},
        )
