"""Error taxonomy shared by the gate's services and the API boundary.

Every failure a caller may observe is a ``GateError`` subclass carrying the
HTTP status it maps to. Messages are safe to return to the caller; anything
more detailed belongs in the server log.
"""

from __future__ import annotations

from fastapi import status


class GateError(Exception):
    """Base exception for failures surfaced to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GateError):
    """Malformed input. The reason is always safe to reveal."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(GateError):
    """Failed proof of identity or an invalid/expired credential.

    A handful of proof defects (missing nonce, unparseable ``issuedAt``) are
    reported with status 400 while still belonging to the auth flow.
    """

    status_code = status.HTTP_401_UNAUTHORIZED


class RateLimitError(GateError):
    """Caller exceeded a rate-limit ceiling."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, *, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class InternalError(GateError):
    """Unexpected failure. Only a generic message ever reaches the caller."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""
