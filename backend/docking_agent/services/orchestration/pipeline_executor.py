from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from ...config import get_settings
from ...exceptions import ConflictError, ExternalServiceError, NotFoundError, PersistenceError
from ...models import ANALYZED, FAILED, PENDING, PROCESSING, Job, RunResult, TagSuggestion
from ...services.categorization import CategorizationService
from ...services.firestore import FirestoreService
from ...services.ledger import LedgerAnchorService, LedgerConfig
from ...services.report_generation import ReportGenerationService

logger = logging.getLogger(__name__)

MAX_ERROR_CHARS = 2000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_report_id(when: datetime) -> str:
    return f"REP-{when.year}-{uuid.uuid4().hex[:6].upper()}"


class PipelineExecutor:
    """Owns the execution of a single job's analysis pipeline.

    Steps: categorize (non-fatal) -> generate report (fatal) -> anchor on
    ledger (non-fatal) -> persist report -> mark analyzed.

    One executor is shared by the scheduler and manual triggers; its lock
    guarantees at most one run at a time, and a job that is already claimed
    by a run is refused with ConflictError.
    """

    def __init__(
        self,
        store: Optional[FirestoreService] = None,
        categorizer: Optional[CategorizationService] = None,
        reporter: Optional[ReportGenerationService] = None,
        ledger: Optional[LedgerAnchorService] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        settings = get_settings()
        self.store = store or FirestoreService()
        self.categorizer = categorizer or CategorizationService()
        self.reporter = reporter or ReportGenerationService()
        self.ledger = ledger or LedgerAnchorService(
            LedgerConfig(
                anchor_url=settings.LEDGER_ANCHOR_URL,
                api_key=settings.LEDGER_API_KEY,
                network=settings.LEDGER_NETWORK,
                timeout=settings.LEDGER_TIMEOUT_SEC,
            )
        )
        self._now = now or _utcnow
        self._lock = asyncio.Lock()
        self._claimed: Set[str] = set()
        self._current_job_id: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def current_job_id(self) -> Optional[str]:
        return self._current_job_id

    async def run(self, job_id: str, *, reprocess: bool = False) -> RunResult:
        """Carry one job to `analyzed` or `failed`.

        Automatic runs only touch jobs that are still pending once the lock is
        held; `reprocess=True` resets the job to pending first (explicit user
        request). Raises NotFoundError for unknown ids, ConflictError when the
        job is already claimed, and lets PersistenceError propagate.
        """
        if job_id in self._claimed:
            raise ConflictError(f"Job {job_id} is already being processed")
        self._claimed.add(job_id)
        try:
            async with self._lock:
                self._current_job_id = job_id
                try:
                    return await self._run_locked(job_id, reprocess)
                finally:
                    self._current_job_id = None
        finally:
            self._claimed.discard(job_id)

    async def _run_locked(self, job_id: str, reprocess: bool) -> RunResult:
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")

        if job.status != PENDING:
            if not reprocess:
                logger.info("[%s] skipped: status is %s, not pending", job_id, job.status)
                return RunResult(success=False, jobId=job_id, skipped=True, error=f"Job is {job.status}")
            logger.info("[%s] reprocess requested from status %s", job_id, job.status)
            self._set_status(job_id, PENDING)

        # Visible to observers before any external call
        job = self._set_status(job_id, PROCESSING)

        tags: List[TagSuggestion] = []
        try:
            tags = await self._categorize(job)

            try:
                content = await self.reporter.generate_report(job.metrics())
            except ExternalServiceError as exc:
                reason = f"Report generation failed: {exc}"
                logger.error("[%s] %s", job_id, reason)
                self._set_status(job_id, FAILED, error=reason)
                return RunResult(success=False, jobId=job_id, tags=tags, error=reason)

            generated_at = self._now()
            report_id = new_report_id(generated_at)
            token = await self._anchor(
                job,
                {
                    "reportId": report_id,
                    "jobId": job.id,
                    "simulationId": job.simulationId,
                    "executiveSummary": content.executiveSummary,
                    "generatedAt": generated_at.isoformat(),
                },
            )

            # Report first: an observer never sees `analyzed` without a stored report.
            self.store.create_report(
                {
                    "reportId": report_id,
                    "jobId": job.id,
                    "title": f"{job.proteinTarget} - {job.ligandName} Analysis",
                    "executiveSummary": content.executiveSummary,
                    "fullContent": content.fullContent,
                    "performanceMetrics": self._performance_metrics(job, content.performanceMetrics),
                    "verificationToken": token,
                    "generatedAt": generated_at,
                }
            )
            self._set_status(job_id, ANALYZED)
            logger.info("[%s] analyzed: report=%s tags=%d verified=%s", job_id, report_id, len(tags), bool(token))
            return RunResult(success=True, jobId=job_id, reportId=report_id, tags=tags)

        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("[%s] unexpected error", job_id)
            reason = f"Unexpected internal error: {exc}"
            self._set_status(job_id, FAILED, error=reason)
            return RunResult(success=False, jobId=job_id, tags=tags, error=reason)

    async def _categorize(self, job: Job) -> List[TagSuggestion]:
        try:
            suggestions = await self.categorizer.categorize(job.proteinTarget, job.ligandName, job.bindingAffinity)
        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("[%s] categorization failed, continuing without tags: %r", job.id, exc)
            return []
        for s in suggestions:
            self.store.create_tag({"jobId": job.id, "tagType": s.type, "tagValue": s.value})
        return suggestions

    async def _anchor(self, job: Job, payload: Dict[str, Any]) -> Optional[str]:
        try:
            return await self.ledger.anchor(payload)
        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("[%s] ledger anchoring failed, storing report unverified: %r", job.id, exc)
            return None

    @staticmethod
    def _performance_metrics(job: Job, generated: Dict[str, Any]) -> Dict[str, Any]:
        # Measured values win over model-reported ones
        metrics = {**generated, "bindingEnergy": job.bindingAffinity}
        if job.ligandEfficiency is not None:
            metrics["ligandEfficiency"] = job.ligandEfficiency
        if job.inhibitionConstant is not None:
            metrics["inhibitionConstant"] = job.inhibitionConstant
        return metrics

    def _set_status(self, job_id: str, status: str, error: Optional[str] = None) -> Job:
        job = self.store.update_job(job_id, {"status": status, "error": error[:MAX_ERROR_CHARS] if error else None})
        if job is None:
            raise NotFoundError(f"Job {job_id} disappeared during processing")
        return job
