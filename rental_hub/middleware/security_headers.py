"""
Security Headers Middleware - helmet-style response headers.

Adds the default helmet header set with Content-Security-Policy left off,
since the API also serves the single-page client which loads remote assets.

Usage:
    from rental_hub.middleware.security_headers import SecurityHeadersMiddleware

    app.add_middleware(SecurityHeadersMiddleware, enforce_https=True)
"""

from starlette.middleware.base import BaseHTTPMiddleware

from rental_hub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

BASE_SECURITY_HEADERS = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    # Legacy auditor is buggy; helmet disables it explicitly
    "X-XSS-Protection": "0",
}

HSTS_HEADER_VALUE = "max-age=15552000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all HTTP responses."""

    def __init__(self, app, enforce_https: bool = False):
        """
        Args:
            app: FastAPI application
            enforce_https: Whether to add HSTS header (production only)
        """
        super().__init__(app)
        self.enforce_https = enforce_https

        logger.info("Security headers middleware initialized", enforce_https=self.enforce_https)

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        for name, value in BASE_SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        if self.enforce_https:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER_VALUE

        return response
