"""Security response headers and request body size limiting."""

import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds hardening headers to every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared body size exceeds ``max_body_bytes``."""

    def __init__(self, app, max_body_bytes: int):
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                declared = -1

            if declared < 0:
                return JSONResponse(
                    status_code=400,
                    content={"error": {"message": "Invalid Content-Length header", "type": "invalid_request_error"}}
                )
            if declared > self.max_body_bytes:
                logger.warning(f"Rejected {declared} byte request body on {request.url.path}")
                return JSONResponse(
                    status_code=413,
                    content={
                        "error": {
                            "message": f"Request body too large. Maximum allowed: {self.max_body_bytes} bytes",
                            "type": "request_too_large"
                        }
                    }
                )

        return await call_next(request)
