"""Signed-challenge verification used to prove control of an address."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi import status

from ethos_gate.core.errors import AuthError
from ethos_gate.core.security import mask_address, normalize_address, recover_signer
from ethos_gate.core.settings import settings
from ethos_gate.services.replay import ReplayProtectionService

logger = logging.getLogger(__name__)

CHALLENGE_LABEL = "EthosGate Score Check"


@dataclass(frozen=True)
class ChallengeProof:
    """Challenge response presented by a caller."""

    address: str
    signature: str | None
    nonce: str | None
    issued_at: str | None


def build_challenge_message(address: str, nonce: str, issued_at: str) -> str:
    """Return the exact text a client must sign for a challenge.

    Args:
        address: Normalized (lower-case) address.
        nonce: Caller-chosen nonce.
        issued_at: The ``issuedAt`` string exactly as the caller sent it.
    """
    return "\n".join(
        (
            CHALLENGE_LABEL,
            f"Address: {address}",
            f"Nonce: {nonce}",
            f"Issued At: {issued_at}",
        )
    )


def parse_issued_at(value: str) -> float | None:
    """Parse an ISO-8601 timestamp into epoch seconds.

    Naive timestamps are read as UTC. Returns None when unparseable.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.timestamp()


class SignatureVerifier:
    """Verifies challenge proofs and consumes their nonces."""

    def __init__(
        self,
        replay_service: ReplayProtectionService,
        *,
        max_age_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.replay_service = replay_service
        self.max_age_seconds = float(
            max_age_seconds if max_age_seconds is not None else settings.signature_max_age_seconds
        )
        self._clock = clock

    async def verify(self, proof: ChallengeProof) -> str:
        """Validate a challenge proof.

        Checks run in a fixed order and each failure has its own message.
        Stale proofs are rejected before any signature recovery happens.

        Returns:
            The lower-cased address that signed the challenge.

        Raises:
            ValidationError: If the address is malformed.
            AuthError: For any other failed check.
        """
        address = normalize_address(proof.address)

        if not proof.signature:
            raise AuthError("Signature required")
        if not proof.nonce:
            raise AuthError("Nonce required", status_code=status.HTTP_400_BAD_REQUEST)
        issued_at = parse_issued_at(proof.issued_at) if proof.issued_at else None
        if issued_at is None:
            raise AuthError("Invalid issuedAt", status_code=status.HTTP_400_BAD_REQUEST)

        if abs(self._clock() - issued_at) > self.max_age_seconds:
            raise AuthError("Signature expired")

        if await self.replay_service.is_used(address, proof.nonce):
            raise AuthError("Nonce already used")

        message = build_challenge_message(address, proof.nonce, proof.issued_at or "")
        recovered = recover_signer(message, proof.signature)
        if recovered is None or recovered != address:
            logger.info("Signature mismatch for %s", mask_address(address))
            raise AuthError("Signature does not match address")

        if not await self.replay_service.mark_used(address, proof.nonce):
            raise AuthError("Nonce already used")

        return address
