"""Shared API dependencies for access checks and throttling."""

from typing import Annotated

from fastapi import Depends, Request

from ethos_gate.core.security import ADDRESS_PATTERN
from ethos_gate.core.settings import settings
from ethos_gate.services.access import AccessService, get_access_service
from ethos_gate.services.rate_limit import RateLimiter, address_key, combo_key


def get_access_service_dep() -> AccessService:
    return get_access_service()


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the application's rate limiter."""
    limiter: RateLimiter = request.app.state.rate_limiter
    return limiter


def enforce_address_limits(limiter: RateLimiter, ip: str, address: str | None) -> None:
    """Throttle by wallet address and by IP+address.

    Malformed addresses are left for request validation to reject.

    Raises:
        RateLimitError: If either ceiling is exceeded.
    """
    if not address or not ADDRESS_PATTERN.fullmatch(address):
        return
    ceiling = settings.rate_limit_per_address
    limiter.enforce(
        address_key(address),
        ceiling,
        "Rate limit exceeded for this address. Please try again later.",
    )
    limiter.enforce(
        combo_key(ip, address),
        ceiling,
        "Rate limit exceeded for this address. Please try again later.",
    )


AccessServiceDep = Annotated[AccessService, Depends(get_access_service_dep)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
