"""
Middleware components for request processing.

This package contains middleware for:
- Request context (request ID, client IP)
- Security (CORS, security headers)
"""

from rental_hub.middleware.cors import CORSMiddleware
from rental_hub.middleware.request_context import RequestContextMiddleware
from rental_hub.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestContextMiddleware",
    "SecurityHeadersMiddleware",
    "CORSMiddleware",
]
