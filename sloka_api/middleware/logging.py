"""
Sloka API — Request Logging Middleware
=======================================

What:  One access-log line per request: method, path, status, duration,
       request ID and client address.
How:   Measures from middleware entry to response return. The level follows
       the status class (5xx ERROR, 4xx WARNING, else INFO). Health checks are
       not logged.

Log line:
    GET /api/quote/daily 200 3.2ms [a1b2c3d4] from 203.0.113.7
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from sloka_api.middleware.client import client_ip
from sloka_api.middleware.request_id import request_id_var

logger = logging.getLogger("sloka_api.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs structured information about each HTTP request and response."""

    def __init__(self, app: ASGIApp, trust_proxy: bool = True):
        super().__init__(app)
        self.trust_proxy = trust_proxy

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        method = request.method
        ip = client_ip(request, trust_proxy=self.trust_proxy)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": ip,
            },
        )

        return response
