"""Address and signature utilities built on Ethereum personal-sign primitives."""
from __future__ import annotations

import re

from eth_account import Account
from eth_account.messages import encode_defunct

from ethos_gate.core.errors import ValidationError

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: object) -> str:
    """Validate an address and return its lower-cased form.

    Args:
        address: Value supplied by the caller.

    Returns:
        The ``0x``-prefixed address in lower case.

    Raises:
        ValidationError: If the value is not 40 hex characters prefixed ``0x``.
    """
    if not isinstance(address, str) or not ADDRESS_PATTERN.fullmatch(address):
        raise ValidationError("Invalid address format")
    return address.lower()


def mask_address(address: str) -> str:
    """Return a log-safe form of an address (first 6 and last 4 characters)."""
    if len(address) <= 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def recover_signer(message: str, signature: str) -> str | None:
    """Recover the address that produced an EIP-191 personal signature.

    Args:
        message: Exact text that was signed on the client.
        signature: Hex-encoded 65-byte signature.

    Returns:
        The recovering address in lower case, or None if the signature is malformed.
    """
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception:
        return None
    return str(recovered).lower()
