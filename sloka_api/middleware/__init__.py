# Middleware package init
"""
Sloka API — Middleware Package
===============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Security Headers] → [CORS] → [Body Cap] → [Query Sanitizer]
            → [General Rate Limit] → [Quote Rate Limit] → [Request ID]
            → [Logging] → [GZip] → [Unexpected Errors] → Route Handler

    Responses travel back through the same chain in reverse, so 429 and 413
    rejections still get the security and CORS headers.

    Unexpected errors are converted to the 500 envelope innermost (errors.py),
    so those responses carry the same headers.
"""
