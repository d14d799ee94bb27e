"""System and transparency endpoints for the EthosGate API."""

from __future__ import annotations

from fastapi import APIRouter

from ethos_gate.core.settings import settings
from ethos_gate.services.reputation import TIER_THRESHOLDS

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings; suitable for client UIs.

    Returns:
        Dictionary containing tier thresholds, signature windows, rate-limit
        ceilings and cache settings
    """
    config = settings.public_config
    config["tiers"] = {tier.value: threshold for tier, threshold in TIER_THRESHOLDS.items()}
    return config
