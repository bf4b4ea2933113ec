"""Simulations router: job CRUD, tags, and manual report requests.

Thin HTTP layer that delegates to the orchestration service; the agent picks
up new `pending` jobs on its own schedule.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from ..deps import get_runtime, http_errors
from ..models import Job, JobStatus, Report, Tag
from ..services.orchestration.runtime import AgentRuntime

router = APIRouter(prefix="/simulations", tags=["simulations"])


@router.get("", response_model=List[Job])
async def list_simulations(
    status_filter: Optional[JobStatus] = Query(default=None, alias="status"),
    search: Optional[str] = None,
    runtime: AgentRuntime = Depends(get_runtime),
) -> List[Job]:
    """List simulations newest first, optionally filtered by status and target/ligand text."""
    with http_errors():
        return runtime.jobs.list_jobs(status=status_filter, search=search)


@router.get("/{job_id}", response_model=Job)
async def get_simulation(job_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> Job:
    with http_errors():
        return runtime.jobs.get_job(job_id)


@router.post("", response_model=Job, status_code=status.HTTP_201_CREATED)
async def create_simulation(
    payload: Dict[str, Any] = Body(...),
    runtime: AgentRuntime = Depends(get_runtime),
) -> Job:
    """Create a pending simulation; the agent analyzes it on a later tick."""
    with http_errors():
        return runtime.jobs.create_job(payload)


@router.patch("/{job_id}", response_model=Job)
async def update_simulation(
    job_id: str,
    payload: Dict[str, Any] = Body(...),
    runtime: AgentRuntime = Depends(get_runtime),
) -> Job:
    with http_errors():
        return runtime.jobs.update_job(job_id, payload)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_simulation(job_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> Response:
    with http_errors():
        runtime.jobs.delete_job(job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{job_id}/generate-report", response_model=Report, status_code=status.HTTP_201_CREATED)
async def generate_report(job_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> Report:
    """Run the analysis pipeline for this simulation now and return the new report."""
    with http_errors():
        result = await runtime.jobs.request_report(job_id)
        if not result.success or not result.reportId:
            raise HTTPException(status_code=503, detail=result.error or "Report generation failed")
        return runtime.jobs.get_report_by_report_id(result.reportId)


@router.get("/{job_id}/tags", response_model=List[Tag])
async def list_simulation_tags(job_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> List[Tag]:
    with http_errors():
        return runtime.jobs.list_tags(job_id)


@router.get("/{job_id}/reports", response_model=List[Report])
async def list_simulation_reports(job_id: str, runtime: AgentRuntime = Depends(get_runtime)) -> List[Report]:
    with http_errors():
        return runtime.jobs.list_job_reports(job_id)
