"""EthosGate: reputation-gated access checks for wallet addresses."""

__version__ = "1.0.0"
