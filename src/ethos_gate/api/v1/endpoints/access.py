# src/ethos_gate/api/v1/endpoints/access.py
"""Access-check and credential endpoints for the EthosGate API."""

from __future__ import annotations

from fastapi import APIRouter, Request

from ethos_gate.api.middleware import client_ip
from ethos_gate.api.v1.dependencies import (
    AccessServiceDep,
    RateLimiterDep,
    enforce_address_limits,
)
from ethos_gate.schemas.access import (
    AccessCheckRequest,
    AccessCheckResponse,
    AccessTokenRequest,
    AccessTokenResponse,
    TokenClaimsResponse,
    VerifyTokenRequest,
)
from ethos_gate.schemas.common import ErrorResponse

router = APIRouter(tags=["access"])

_ERRORS: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
}


@router.post(
    "/access-token",
    summary="Exchange a signed challenge for an access credential",
    response_model=AccessTokenResponse,
    responses=_ERRORS,
)
async def issue_access_token(
    payload: AccessTokenRequest,
    request: Request,
    service: AccessServiceDep,
    limiter: RateLimiterDep,
) -> AccessTokenResponse:
    """Verify a signed challenge and return a short-lived credential."""
    enforce_address_limits(limiter, client_ip(request), payload.address)
    issued = await service.issue_credential(payload)
    snapshot = issued.snapshot
    return AccessTokenResponse(
        token=issued.token,
        address=snapshot.address,
        score=snapshot.score,
        tier=snapshot.tier,
        vouches=snapshot.vouch_count,
        reviews=snapshot.review_count,
    )


@router.post(
    "/check-access",
    summary="Decide whether an address meets a reputation threshold",
    response_model=AccessCheckResponse,
    response_model_exclude_none=True,
    responses=_ERRORS,
)
async def check_access(
    payload: AccessCheckRequest,
    request: Request,
    service: AccessServiceDep,
    limiter: RateLimiterDep,
) -> AccessCheckResponse:
    """Return the caller's score, tier and access decision."""
    enforce_address_limits(limiter, client_ip(request), payload.address)
    decision = await service.check_access(payload)
    snapshot = decision.snapshot
    return AccessCheckResponse(
        address=snapshot.address,
        score=snapshot.score,
        tier=snapshot.tier,
        has_access=decision.has_access,
        vouches=snapshot.vouch_count,
        reviews=snapshot.review_count,
        positive_reviews=snapshot.positive_review_count,
        negative_reviews=snapshot.negative_review_count,
        token=decision.token,
    )


@router.post(
    "/verify-token",
    summary="Decode and validate an access credential",
    response_model=TokenClaimsResponse,
    responses=_ERRORS,
)
async def verify_token(
    payload: VerifyTokenRequest,
    service: AccessServiceDep,
) -> TokenClaimsResponse:
    """Return the claims of a valid, unexpired credential."""
    claims = service.verify_credential(payload.token)
    return TokenClaimsResponse(
        address=claims.address,
        score=claims.score,
        tier=claims.tier,
        iat=claims.issued_at,
        exp=claims.expires_at,
    )
