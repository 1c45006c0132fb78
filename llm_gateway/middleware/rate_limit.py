"""Rate limiting for the gateway's /api/ routes.

Requests are counted per client IP and URL path with slowapi. Every path
under /api/ allows ``max_requests`` per ``window_minutes``; service routes
such as /health stay unlimited.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import sync_check_limits
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import RateLimitConfig

logger = logging.getLogger(__name__)

LIMITED_PREFIX = "/api/"

# Metrics tracking
_metrics_data = {
    "total_requests_blocked": 0,
    "startup_time": time.time()
}


def create_rate_limiter(config: RateLimitConfig) -> Optional[Limiter]:
    """Create the limiter, or None when rate limiting is disabled."""
    if not config.enabled:
        return None

    logger.info(f"Using {config.storage_uri} storage for rate limiting")
    return Limiter(
        key_func=get_remote_address,
        default_limits=[config.limit_string],
        storage_uri=config.storage_uri,
        key_style="url",
        headers_enabled=True
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded exceptions.

    Kept synchronous because slowapi's sync_check_limits calls the handler directly.
    """
    _metrics_data["total_requests_blocked"] += 1
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")

    response = JSONResponse(
        status_code=429,
        content={
            "error": {
                "message": f"Too many requests, please try again later. Limit: {exc.detail}",
                "type": "rate_limit_exceeded"
            }
        }
    )

    limiter = request.app.state.limiter
    current_limit = getattr(request.state, "view_rate_limit", None)
    if current_limit is not None:
        response = limiter._inject_headers(response, current_limit)
    return response


class APIRateLimitMiddleware(BaseHTTPMiddleware):
    """Applies the limiter's default limits to every request under /api/.

    Requests are matched on the URL path rather than the resolved route, so
    routers nested by ``include_router`` are limited like any other route.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        limiter: Optional[Limiter] = getattr(request.app.state, "limiter", None)
        if limiter is None or not limiter.enabled or not request.url.path.startswith(LIMITED_PREFIX):
            return await call_next(request)

        error_response, should_inject_headers = sync_check_limits(limiter, request, None, request.app)
        if error_response is not None:
            return error_response

        response = await call_next(request)
        if should_inject_headers:
            response = limiter._inject_headers(response, request.state.view_rate_limit)
        return response


def setup_rate_limiting(app: FastAPI, config: RateLimitConfig) -> Optional[Limiter]:
    """Set up rate limiting for the FastAPI application."""
    limiter = create_rate_limiter(config)
    app.state.limiter = limiter

    if limiter is None:
        logger.info("Rate limiting is disabled")
        return None

    app.add_middleware(APIRateLimitMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    logger.info(f"Rate limiting enabled: {config.limit_string} per client on {LIMITED_PREFIX} routes")
    return limiter


def get_rate_limit_metrics(config: RateLimitConfig) -> Dict[str, Any]:
    return {
        "enabled": config.enabled,
        "limit": config.limit_string if config.enabled else None,
        "total_requests_blocked": _metrics_data["total_requests_blocked"],
        "uptime_hours": (time.time() - _metrics_data["startup_time"]) / 3600,
    }
