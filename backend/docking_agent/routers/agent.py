"""Agent router: dashboard statistics, insights, and polling status."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_runtime, http_errors
from ..models import AgentStatus, DashboardStats, Insights
from ..services.orchestration.runtime import AgentRuntime

router = APIRouter(tags=["agent"])


@router.get("/stats", response_model=DashboardStats)
async def get_stats(runtime: AgentRuntime = Depends(get_runtime)) -> DashboardStats:
    with http_errors():
        return runtime.insights.dashboard_stats()


@router.get("/agent/insights", response_model=Insights)
async def get_insights(runtime: AgentRuntime = Depends(get_runtime)) -> Insights:
    """Summary statistics and recommendations across all simulations."""
    with http_errors():
        return runtime.insights.summarize()


@router.get("/agent/status", response_model=AgentStatus)
async def get_agent_status(runtime: AgentRuntime = Depends(get_runtime)) -> AgentStatus:
    return AgentStatus(
        running=runtime.scheduler.is_running,
        busy=runtime.executor.busy,
        currentJobId=runtime.executor.current_job_id,
        intervalSeconds=runtime.scheduler.interval,
    )
