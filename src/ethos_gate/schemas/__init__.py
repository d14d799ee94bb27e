"""Pydantic schemas for the EthosGate API."""

from .access import (
    AccessCheckRequest,
    AccessCheckResponse,
    AccessTokenRequest,
    AccessTokenResponse,
    TokenClaimsResponse,
    VerifyTokenRequest,
)
from .common import ErrorResponse

__all__ = [
    "AccessCheckRequest",
    "AccessCheckResponse",
    "AccessTokenRequest",
    "AccessTokenResponse",
    "ErrorResponse",
    "TokenClaimsResponse",
    "VerifyTokenRequest",
]
