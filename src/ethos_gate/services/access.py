"""Access decisions: resolve the caller's address, look up reputation, decide."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ethos_gate.core.errors import AuthError, ValidationError
from ethos_gate.core.security import mask_address, normalize_address
from ethos_gate.schemas.access import AccessCheckRequest, AccessTokenRequest
from ethos_gate.services.replay import get_replay_service
from ethos_gate.services.reputation import (
    ReputationClient,
    ReputationSnapshot,
    Tier,
    get_reputation_client,
)
from ethos_gate.services.signing import ChallengeProof, SignatureVerifier
from ethos_gate.services.tokens import AccessClaims, TokenService, get_token_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    """Result of an access check."""

    snapshot: ReputationSnapshot
    min_score: float
    has_access: bool
    token: str | None = None

    @property
    def address(self) -> str:
        return self.snapshot.address

    @property
    def tier(self) -> Tier:
        return self.snapshot.tier


@dataclass(frozen=True)
class IssuedCredential:
    """Credential minted from a challenge response."""

    token: str
    snapshot: ReputationSnapshot


class AccessService:
    """Orchestrates signature checks, credentials and reputation lookups."""

    def __init__(
        self,
        reputation: ReputationClient,
        verifier: SignatureVerifier,
        tokens: TokenService,
    ) -> None:
        self.reputation = reputation
        self.verifier = verifier
        self.tokens = tokens

    async def _verify_challenge(
        self, address: str, request: AccessTokenRequest | AccessCheckRequest
    ) -> str:
        return await self.verifier.verify(
            ChallengeProof(
                address=address,
                signature=request.signature,
                nonce=request.nonce,
                issued_at=request.issued_at,
            )
        )

    async def issue_credential(self, request: AccessTokenRequest) -> IssuedCredential:
        """Exchange a signed challenge for a credential.

        Raises:
            ValidationError: If the address is malformed.
            AuthError: If the challenge does not verify.
        """
        address = await self._verify_challenge(normalize_address(request.address), request)
        snapshot = await self.reputation.fetch(address)
        token = self.tokens.issue(address, snapshot.score, snapshot.tier)
        logger.info("Issued credential for %s (tier=%s)", mask_address(address), snapshot.tier.value)
        return IssuedCredential(token=token, snapshot=snapshot)

    async def check_access(self, request: AccessCheckRequest) -> AccessDecision:
        """Evaluate an address against ``request.min_score``.

        The address comes from the credential when one is presented, from a
        verified signature when one is presented, or from the bare address
        field otherwise. A credential can only be issued when this request
        itself carried a credential or a verified signature.
        """
        proven = False
        if request.token:
            claims = self.tokens.verify(request.token)
            address = claims.address
            proven = True
            if request.address is not None and normalize_address(request.address) != address:
                raise ValidationError("Token does not match requested address")
        elif request.address:
            address = normalize_address(request.address)
            if request.signature:
                address = await self._verify_challenge(address, request)
                proven = True
        else:
            raise ValidationError("Address required")

        masked = mask_address(address)
        logger.info("Check access for %s (minScore: %s)", masked, request.min_score)

        snapshot = await self.reputation.fetch(address)
        has_access = snapshot.score >= request.min_score

        token = None
        if request.issue_token:
            if not proven:
                raise AuthError("Signature required to issue token")
            token = self.tokens.issue(address, snapshot.score, snapshot.tier)

        logger.info(
            "Decision for %s: score=%d tier=%s hasAccess=%s",
            masked,
            snapshot.score,
            snapshot.tier.value,
            has_access,
        )
        return AccessDecision(
            snapshot=snapshot,
            min_score=request.min_score,
            has_access=has_access,
            token=token,
        )

    def verify_credential(self, token: str | None) -> AccessClaims:
        """Validate a credential presented on its own.

        Raises:
            ValidationError: If no token was supplied.
            AuthError: If the token is invalid or expired.
        """
        if not token:
            raise ValidationError("Token is required")
        return self.tokens.verify(token)


def get_access_service() -> AccessService:
    """Return an access service wired to the process-wide collaborators."""
    return AccessService(
        reputation=get_reputation_client(),
        verifier=SignatureVerifier(get_replay_service()),
        tokens=get_token_service(),
    )
