"""Access-check and credential schemas.

Field names on the wire are camelCase; unknown fields are rejected.
"""

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from ethos_gate.services.reputation import Tier

MAX_MIN_SCORE = 2500

_REQUEST_CONFIG = ConfigDict(extra="forbid", populate_by_name=True)
_RESPONSE_CONFIG = ConfigDict(populate_by_name=True)


class SignedChallenge(BaseModel):
    """Fields of a signed challenge response."""

    signature: str | None = Field(None, description="Hex-encoded personal_sign signature")
    nonce: str | None = Field(None, description="Caller-chosen one-time value")
    issued_at: str | None = Field(
        None,
        alias="issuedAt",
        description="ISO-8601 time the challenge was signed",
    )

    @field_validator("signature", "nonce", "issued_at", mode="before")
    @classmethod
    def _non_string_as_missing(cls, value: object) -> object:
        # The verifier reports missing and malformed challenge fields itself.
        return value if isinstance(value, str) else None


class AccessTokenRequest(SignedChallenge):
    """Challenge response exchanged for an access credential."""

    address: str = Field(..., description="0x-prefixed wallet address")

    model_config = _REQUEST_CONFIG


class AccessCheckRequest(SignedChallenge):
    """Request to evaluate an address against a score threshold."""

    address: str | None = Field(None, description="0x-prefixed wallet address")
    min_score: float = Field(0, alias="minScore", description="Required score, clamped to [0, 2500]")
    issue_token: StrictBool = Field(
        False,
        alias="issueToken",
        description="Return a fresh credential with the decision",
    )
    token: str | None = Field(None, description="Previously issued access credential")

    model_config = _REQUEST_CONFIG

    @field_validator("min_score", mode="before")
    @classmethod
    def _default_min_score(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("min_score")
    @classmethod
    def _clamp_min_score(cls, value: float) -> float:
        return max(0.0, min(value, float(MAX_MIN_SCORE)))


class VerifyTokenRequest(BaseModel):
    """Credential submitted for verification."""

    token: str | None = Field(None, description="Access credential to verify")

    model_config = _REQUEST_CONFIG


class AccessTokenResponse(BaseModel):
    """Credential issued after a successful challenge response."""

    token: str
    address: str
    score: int
    tier: Tier
    vouches: int
    reviews: int

    model_config = _RESPONSE_CONFIG


class AccessCheckResponse(BaseModel):
    """Access decision for one address."""

    address: str
    score: int
    tier: Tier
    has_access: bool = Field(..., alias="hasAccess")
    vouches: int
    reviews: int
    positive_reviews: int = Field(..., alias="positiveReviews")
    negative_reviews: int = Field(..., alias="negativeReviews")
    token: str | None = None

    model_config = _RESPONSE_CONFIG


class TokenClaimsResponse(BaseModel):
    """Decoded claims of a valid credential."""

    address: str
    score: int
    tier: Tier
    iat: int = Field(..., description="Issued-at, seconds since epoch")
    exp: int = Field(..., description="Expiry, seconds since epoch")

    model_config = _RESPONSE_CONFIG
