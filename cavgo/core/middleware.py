"""HTTP middlewares: security headers and request body size limit."""

import logging
from collections.abc import Callable

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# Swagger UI needs a relaxed policy to load its assets
DOCS_PATHS = {"/docs", "/redoc", "/openapi.json"}

_TOO_LARGE_BODY = (
    '{"error":"RequestTooLarge","message":"Request body exceeds maximum allowed size",'
    '"details":{}}'
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every HTTP response.

    HSTS, frame denial, CSP, nosniff, referrer and permissions policies.
    """

    def __init__(self, app: ASGIApp, hsts_max_age: int = 31536000) -> None:
        super().__init__(app)
        self.hsts_max_age = hsts_max_age

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        is_docs_path = request.url.path in DOCS_PATHS

        response.headers["Strict-Transport-Security"] = (
            f"max-age={self.hsts_max_age}; includeSubDomains"
        )
        if is_docs_path:
            csp = [
                "default-src 'self'",
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
                "img-src 'self' data: https:",
            ]
        else:
            response.headers["X-Frame-Options"] = "DENY"
            csp = [
                "default-src 'self'",
                "img-src 'self' data: https:",
                "connect-src 'self'",
                "frame-ancestors 'none'",
                "base-uri 'self'",
            ]
        response.headers["Content-Security-Policy"] = "; ".join(csp)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Card payments happen on the POS, never in the browser
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), payment=()"
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects request bodies larger than the configured limit.

    Checks the Content-Length header first, then the actual body for
    POST/PUT/PATCH so a missing or falsified header cannot bypass it.
    """

    def __init__(self, app: ASGIApp, max_size_mb: int = 1):
        super().__init__(app)
        self.max_size_bytes = max_size_mb * 1024 * 1024

    def _reject(self, request: Request, size: int) -> Response:
        logger.warning(
            "Request size %s bytes exceeds limit %s bytes",
            size,
            self.max_size_bytes,
            extra={"path": request.url.path},
        )
        return Response(
            content=_TOO_LARGE_BODY,
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            media_type="application/json",
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_size_bytes:
                return self._reject(request, int(content_length))

        if request.method in ("POST", "PUT", "PATCH"):
            body = await request.body()
            if len(body) > self.max_size_bytes:
                return self._reject(request, len(body))

        return await call_next(request)
