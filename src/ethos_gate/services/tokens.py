"""Short-lived access credentials binding an address to a score and tier."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from jose import JWTError, jwt

from ethos_gate.core.errors import AuthError, ConfigurationError
from ethos_gate.core.security import ADDRESS_PATTERN
from ethos_gate.core.settings import settings
from ethos_gate.services.reputation import Tier


@dataclass(frozen=True)
class AccessClaims:
    """Decoded contents of an access credential."""

    address: str
    score: int
    tier: Tier
    issued_at: int
    expires_at: int

    def to_dict(self) -> dict[str, object]:
        return {
            "address": self.address,
            "score": self.score,
            "tier": self.tier.value,
            "iat": self.issued_at,
            "exp": self.expires_at,
        }


class TokenService:
    """Issues and verifies HMAC-signed JWT credentials.

    Verification is stateless: integrity and expiry only, no revocation.
    """

    def __init__(
        self,
        secret: str | None = None,
        *,
        algorithm: str | None = None,
        ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        secret = secret if secret is not None else settings.jwt_secret
        if not secret:
            raise ConfigurationError("A credential signing secret is required")
        self._secret = secret
        self.algorithm = algorithm or settings.jwt_algorithm
        if not self.algorithm.startswith("HS"):
            raise ConfigurationError(f"Unsupported credential algorithm: {self.algorithm}")
        self.ttl_seconds = int(
            ttl_seconds if ttl_seconds is not None else settings.access_token_ttl_seconds
        )
        self._clock = clock

    def issue(self, address: str, score: int, tier: Tier) -> str:
        """Mint a credential for ``address`` valid for ``ttl_seconds``."""
        now = int(self._clock())
        claims = AccessClaims(
            address=address.lower(),
            score=int(score),
            tier=Tier(tier),
            issued_at=now,
            expires_at=now + self.ttl_seconds,
        )
        encoded: str = jwt.encode(claims.to_dict(), self._secret, algorithm=self.algorithm)
        return encoded

    def verify(self, token: str) -> AccessClaims:
        """Decode and validate a credential.

        Raises:
            AuthError: If the signature, payload shape or expiry is invalid.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as err:
            raise AuthError("Invalid token") from err

        try:
            claims = AccessClaims(
                address=str(payload["address"]),
                score=int(payload["score"]),
                tier=Tier(payload["tier"]),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError) as err:
            raise AuthError("Invalid token") from err

        if not ADDRESS_PATTERN.fullmatch(claims.address):
            raise AuthError("Invalid token")
        if self._clock() >= claims.expires_at:
            raise AuthError("Invalid token")
        return claims


def get_token_service() -> TokenService:
    """Return a token service bound to the configured secret."""
    return TokenService()
