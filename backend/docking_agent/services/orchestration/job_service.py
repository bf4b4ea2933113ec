from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ...exceptions import ConflictError, JobValidationError, NotFoundError
from ...models import Job, JobCreate, JobStatus, JobUpdate, Report, ReportVerification, RunResult, Tag
from .pipeline_executor import PipelineExecutor

logger = logging.getLogger(__name__)


def new_simulation_id() -> str:
    return f"SIM-{datetime.now(timezone.utc).year}-{uuid.uuid4().hex[:6].upper()}"


class JobOrchestrationService:
    """Orchestrates job CRUD and manual report requests.

    Keeps HTTP concerns in routers; raises domain exceptions on caller errors.
    Manual report requests go through the shared executor so they can never
    overlap with the agent's own runs.
    """

    def __init__(self, executor: PipelineExecutor) -> None:
        self.executor = executor
        self._store = executor.store

    def list_jobs(self, status: Optional[JobStatus] = None, search: Optional[str] = None) -> List[Job]:
        return self._store.list_jobs(status=status, search=search)

    def get_job(self, job_id: str) -> Job:
        job = self._store.get_job(job_id)
        if job is None:
            raise NotFoundError("Simulation not found")
        return job

    def create_job(self, data: Dict[str, Any]) -> Job:
        """Validate and persist a new pending job."""
        try:
            fields = JobCreate.model_validate(data)
        except ValidationError as exc:
            raise JobValidationError(str(exc)) from exc

        simulation_id = fields.simulationId or new_simulation_id()
        if self._store.get_job_by_simulation_id(simulation_id) is not None:
            raise ConflictError(f"Simulation {simulation_id} already exists")

        doc = fields.model_dump(exclude={"simulationId"})
        doc["simulationId"] = simulation_id
        job = self._store.create_job(doc)
        logger.info("[%s] created job %s: %s / %s", job.id, simulation_id, job.proteinTarget, job.ligandName)
        return job

    def update_job(self, job_id: str, data: Dict[str, Any]) -> Job:
        try:
            updates = JobUpdate.model_validate(data).model_dump(exclude_unset=True)
        except ValidationError as exc:
            raise JobValidationError(str(exc)) from exc
        if job_id == self.executor.current_job_id:
            raise ConflictError("Simulation is being processed")
        job = self._store.update_job(job_id, updates)
        if job is None:
            raise NotFoundError("Simulation not found")
        return job

    def delete_job(self, job_id: str) -> None:
        if job_id == self.executor.current_job_id:
            raise ConflictError("Simulation is being processed")
        self._store.delete_job(job_id)

    async def request_report(self, job_id: str) -> RunResult:
        """Reprocess a job now, outside the polling cadence."""
        self.get_job(job_id)
        return await self.executor.run(job_id, reprocess=True)

    def list_tags(self, job_id: str) -> List[Tag]:
        return self._store.list_tags_for_job(job_id)

    def list_job_reports(self, job_id: str) -> List[Report]:
        return self._store.list_reports_for_job(job_id)

    def list_reports(self) -> List[Report]:
        return self._store.list_reports()

    def get_report(self, report_id: str) -> Report:
        report = self._store.get_report(report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    def get_report_by_report_id(self, report_id: str) -> Report:
        report = self._store.get_report_by_report_id(report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def verify_report(self, report_id: str) -> ReportVerification:
        """Ask the ledger whether the report's token is known.

        Unverified reports and a disabled ledger both answer `verified=False`.
        """
        report = self.get_report(report_id)
        verified = False
        if report.verificationToken:
            verified = await self.executor.ledger.verify(report.verificationToken)
        return ReportVerification(
            reportId=report.reportId,
            verificationToken=report.verificationToken,
            verified=verified,
        )
