"""
Memory Locks API — Access Log Middleware
=========================================

What:  One log line per request on the `memorylocks.access` logger:

           PATCH /locks/name 200 12.4ms [a1b2c3d4] from 203.0.113.7

       The same fields are attached as `extra` for structured handlers.
Level: ERROR for 5xx, WARNING for 4xx, INFO otherwise.

Not logged: request bodies (names, emails, phone numbers) and the
Worker-API-Key header. Health checks are skipped; load balancers hit them
every few seconds.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from memorylocks.middleware.rate_limit import client_ip
from memorylocks.middleware.request_id import request_id_var

logger = logging.getLogger("memorylocks.access")

SKIPPED_PATHS = {"/", "/health", "/public/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        ip = client_ip(request)
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
            },
        )
        return response
