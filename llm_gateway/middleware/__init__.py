"""Middleware package for the LLM gateway."""

from .rate_limit import create_rate_limiter, get_rate_limit_metrics, setup_rate_limiting
from .security_headers import RequestSizeLimitMiddleware, SecurityHeadersMiddleware

__all__ = [
    "create_rate_limiter",
    "get_rate_limit_metrics",
    "setup_rate_limiting",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware"
]
