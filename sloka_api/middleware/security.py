"""
Sloka API — Security Middleware
================================

What:  Response header hardening, a request-body cap, and query-string
       sanitization.
How:   Three small middleware classes registered by create_app():

    SecurityHeadersMiddleware   CSP, frame/sniff/referrer policies, HSTS ...
    BodySizeLimitMiddleware     413 when the body (declared or streamed)
                                exceeds the cap
    QuerySanitizeMiddleware     drops query keys starting with "$" or
                                containing "." before routing

The API only serves GET, so the body cap and the sanitizer are a second line
of defence rather than something any route depends on.
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import parse_qsl, urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "style-src 'self' 'unsafe-inline'",
    "script-src 'self'",
    "object-src 'none'",
    "upgrade-insecure-requests",
])

SECURITY_HEADERS: Dict[str, str] = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds SECURITY_HEADERS to every response and strips the server banner."""

    def __init__(self, app: ASGIApp, headers: Optional[Dict[str, str]] = None):
        super().__init__(app)
        self.headers = headers or SECURITY_HEADERS

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        if "x-powered-by" in response.headers:
            del response.headers["x-powered-by"]
        return response


class BodySizeLimitMiddleware:
    """
    Rejects requests whose body exceeds `max_bytes`.

    A declared Content-Length is checked up front. Without one (chunked
    transfer) the body is read and counted before the app runs, then replayed
    to it unchanged. Written as plain ASGI because BaseHTTPMiddleware only
    sees the headers.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = 10 * 1024):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                too_large = int(declared) > self.max_bytes
            except ValueError:
                response = JSONResponse(
                    status_code=400,
                    content={"success": False, "error": "Invalid Content-Length header"},
                )
                await response(scope, receive, send)
                return
            if too_large:
                await self._reject(request, declared, scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        chunks: List[Message] = []
        received = 0
        while True:
            message = await receive()
            chunks.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_bytes:
                await self._reject(request, received, scope, receive, send)
                return
            if not message.get("more_body", False):
                break

        async def replay() -> Message:
            if chunks:
                return chunks.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, request: Request, size, scope: Scope, receive: Receive, send: Send) -> None:
        logger.warning(
            "Rejected %s %s: body of %s bytes exceeds %d",
            request.method,
            request.url.path,
            size,
            self.max_bytes,
        )
        response = JSONResponse(
            status_code=413,
            content={"success": False, "error": "Request entity too large"},
        )
        await response(scope, receive, send)


def sanitize_query_string(query_string: bytes) -> bytes:
    """
    Remove parameters whose key starts with "$" or contains ".".

    Returns the input unchanged when nothing had to be removed, so ordinary
    query strings keep their exact encoding.
    """
    pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
    kept = [(k, v) for k, v in pairs if not k.startswith("$") and "." not in k]
    if len(kept) == len(pairs):
        return query_string
    return urlencode(kept).encode("latin-1")


class QuerySanitizeMiddleware(BaseHTTPMiddleware):
    """Rewrites the query string in the ASGI scope before routing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        original = request.scope.get("query_string", b"")
        if original:
            cleaned = sanitize_query_string(original)
            if cleaned != original:
                logger.warning(
                    "Dropped operator-like query keys on %s", request.url.path
                )
                request.scope["query_string"] = cleaned
        return await call_next(request)
