"""Runtime config endpoint for frontend consumption."""
from __future__ import annotations

from fastapi import APIRouter

from ..config import get_settings

router = APIRouter(tags=["config"])


@router.get("/config")
async def get_config() -> dict:
    """Expose non-sensitive agent settings."""
    settings = get_settings()
    return {
        "agentEnabled": settings.AGENT_ENABLED,
        "agentPollIntervalSec": settings.AGENT_POLL_INTERVAL_SEC,
        "ledgerEnabled": bool(settings.LEDGER_ANCHOR_URL),
        "ledgerNetwork": settings.LEDGER_NETWORK,
    }
