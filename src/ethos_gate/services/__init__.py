"""Business logic services for the EthosGate application."""

from .access import AccessService
from .cache import TTLCache
from .rate_limit import RateLimiter
from .replay import ReplayProtectionService
from .reputation import ReputationClient
from .signing import SignatureVerifier
from .tokens import TokenService

__all__ = [
    "AccessService",
    "RateLimiter",
    "ReplayProtectionService",
    "ReputationClient",
    "SignatureVerifier",
    "TTLCache",
    "TokenService",
]
