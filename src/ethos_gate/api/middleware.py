"""HTTP middleware: per-IP rate limiting, security headers, request logging."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response, status

from ethos_gate.api.errors import error_response
from ethos_gate.core.settings import settings
from ethos_gate.services.rate_limit import RateLimiter, ip_key

logger = logging.getLogger("ethos_gate.access")

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def client_ip(request: Request) -> str:
    """Return the caller's IP as seen by the server."""
    return request.client.host if request.client else "unknown"


async def gate_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Throttle by caller IP, then decorate and log the response.

    Only the path is logged; query strings may carry addresses.
    """
    start = time.perf_counter()
    limiter: RateLimiter = request.app.state.rate_limiter
    decision = limiter.check(ip_key(client_ip(request)), settings.rate_limit_per_ip)
    if decision.allowed:
        response = await call_next(request)
    else:
        response = error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Rate limit exceeded. Please try again later.",
            retry_after=decision.retry_after,
        )

    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s - %d - %.0fms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response
