"""Reports router: read-only access to generated analysis reports."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..deps import get_runtime, http_errors
from ..models import Report, ReportVerification
from ..services.orchestration.runtime import AgentRuntime

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("", response_model=List[Report])
async def list_reports(runtime: AgentRuntime = Depends(get_runtime)) -> List[Report]:
    with http_errors():
        return runtime.jobs.list_reports()


@router.get("/by-id/{report_id}", response_model=Report)
async def get_report_by_report_id(report_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> Report:
    """Look up a report by its human-readable id (REP-YYYY-XXXXXX)."""
    with http_errors():
        return runtime.jobs.get_report_by_report_id(report_id)


@router.get("/{report_id}", response_model=Report)
async def get_report(report_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> Report:
    with http_errors():
        return runtime.jobs.get_report(report_id)


@router.get("/{report_id}/verify", response_model=ReportVerification)
async def verify_report(report_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> ReportVerification:
    """Check the report's verification token against the ledger."""
    with http_errors():
        return await runtime.jobs.verify_report(report_id)
