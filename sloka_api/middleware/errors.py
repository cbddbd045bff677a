"""
Sloka API — Unexpected Error Middleware
========================================

What:  Turns exceptions no handler claimed into the 500 error envelope.
How:   Installed innermost, so the response it builds still passes through
       the request ID, CORS and security header middleware on the way out.
       Starlette's own catch-all runs outside the whole middleware stack and
       would send the 500 without those headers.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from sloka_api.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class UnexpectedErrorMiddleware(BaseHTTPMiddleware):
    """
    Catch-all for errors raised below the exception handlers.

    With `expose_details` the exception text is returned to the client
    (development); otherwise the generic message is.
    """

    def __init__(self, app: ASGIApp, expose_details: bool = False):
        super().__init__(app)
        self.expose_details = expose_details

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "[%s] Unexpected error on %s %s: %s",
                request_id_var.get(""),
                request.method,
                request.url.path,
                str(exc),
                exc_info=True,
            )
            message = (str(exc) or INTERNAL_ERROR_MESSAGE) if self.expose_details else INTERNAL_ERROR_MESSAGE
            return JSONResponse(status_code=500, content={"success": False, "error": message})
