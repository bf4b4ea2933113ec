"""Health and readiness endpoints."""
from __future__ import annotations

from datetime import datetime, timezone
from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request) -> dict:
    """Liveness probe endpoint; also reports whether the agent loop is polling."""
    runtime = getattr(request.app.state, "runtime", None)
    return {
        "status": "ok",
        "agentRunning": bool(runtime and runtime.scheduler.is_running),
        "time": datetime.now(timezone.utc).isoformat(),
    }
