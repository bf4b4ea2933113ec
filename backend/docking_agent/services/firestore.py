"""Firestore helper service for the jobs, reports and tags collections."""
from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore

from ..config import get_settings
from ..exceptions import PersistenceError
from ..models import Job, JobStatus, PENDING, Report, Tag

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _persistence_errors(fn: F) -> F:
    """Surface Google API failures as PersistenceError."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except GoogleAPIError as exc:
            logger.error("Firestore %s failed: %s", fn.__name__, exc)
            raise PersistenceError(f"Firestore {fn.__name__} failed: {exc}") from exc

    return wrapper  # type: ignore[return-value]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FirestoreService:
    """Thin wrapper around Firestore client for job, report and tag records."""

    def __init__(self, client: Optional[firestore.Client] = None) -> None:
        settings = get_settings()
        if client is not None:
            self.client = client
        # Use explicit database if provided in env, else default
        elif settings.FIRESTORE_DATABASE_ID:
            self.client = firestore.Client(
                project=settings.GCP_PROJECT or None,
                database=settings.FIRESTORE_DATABASE_ID,
            )
        else:
            self.client = firestore.Client()
        self._jobs = self.client.collection("jobs")
        self._reports = self.client.collection("reports")
        self._tags = self.client.collection("tags")

    # Jobs
    @_persistence_errors
    def create_job(self, fields: Dict[str, Any]) -> Job:
        ref = self._jobs.document()
        now = _now()
        doc = {
            **fields,
            "id": ref.id,
            "status": fields.get("status") or PENDING,
            "error": None,
            # createdAt is written client-side so pending jobs sort without a server round-trip
            "createdAt": now,
            "updatedAt": now,
        }
        ref.set(doc)
        return Job.model_validate(doc)

    @_persistence_errors
    def get_job(self, job_id: str) -> Optional[Job]:
        doc = self._jobs.document(job_id).get()
        return Job.model_validate(doc.to_dict()) if doc.exists else None

    @_persistence_errors
    def get_job_by_simulation_id(self, simulation_id: str) -> Optional[Job]:
        q = self._jobs.where("simulationId", "==", simulation_id).limit(1)
        for doc in q.stream():
            return Job.model_validate(doc.to_dict())
        return None

    @_persistence_errors
    def update_job(self, job_id: str, updates: Dict[str, Any]) -> Optional[Job]:
        ref = self._jobs.document(job_id)
        snap = ref.get()
        if not snap.exists:
            return None
        updates = {k: v for k, v in updates.items() if k not in {"id", "createdAt"}}
        updates["updatedAt"] = _now()
        ref.set(updates, merge=True)
        return Job.model_validate({**(snap.to_dict() or {}), **updates})

    @_persistence_errors
    def delete_job(self, job_id: str) -> None:
        # Reports and tags keep their jobId; no cascade.
        self._jobs.document(job_id).delete()

    @_persistence_errors
    def list_jobs(self, status: Optional[JobStatus] = None, search: Optional[str] = None) -> List[Job]:
        """List jobs newest first, optionally filtered by status and a target/ligand substring."""
        q = self._jobs
        if status:
            q = q.where("status", "==", status)
        jobs = [Job.model_validate(doc.to_dict()) for doc in q.stream()]
        if search:
            needle = search.lower()
            jobs = [
                j for j in jobs if needle in j.proteinTarget.lower() or needle in j.ligandName.lower()
            ]
        # Sort client-side to avoid requiring a composite index.
        jobs.sort(key=lambda j: (j.createdAt or _EPOCH, j.id), reverse=True)
        return jobs

    # Reports
    @_persistence_errors
    def create_report(self, fields: Dict[str, Any]) -> Report:
        ref = self._reports.document()
        doc = {**fields, "id": ref.id}
        doc.setdefault("generatedAt", _now())
        ref.set(doc)
        return Report.model_validate(doc)

    @_persistence_errors
    def get_report(self, report_id: str) -> Optional[Report]:
        doc = self._reports.document(report_id).get()
        return Report.model_validate(doc.to_dict()) if doc.exists else None

    @_persistence_errors
    def get_report_by_report_id(self, report_id: str) -> Optional[Report]:
        q = self._reports.where("reportId", "==", report_id).limit(1)
        for doc in q.stream():
            return Report.model_validate(doc.to_dict())
        return None

    @_persistence_errors
    def list_reports(self) -> List[Report]:
        reports = [Report.model_validate(doc.to_dict()) for doc in self._reports.stream()]
        reports.sort(key=lambda r: r.generatedAt, reverse=True)
        return reports

    @_persistence_errors
    def list_reports_for_job(self, job_id: str) -> List[Report]:
        q = self._reports.where("jobId", "==", job_id)
        reports = [Report.model_validate(doc.to_dict()) for doc in q.stream()]
        reports.sort(key=lambda r: r.generatedAt, reverse=True)
        return reports

    @_persistence_errors
    def delete_report(self, report_id: str) -> None:
        self._reports.document(report_id).delete()

    # Tags
    @_persistence_errors
    def create_tag(self, fields: Dict[str, Any]) -> Tag:
        ref = self._tags.document()
        doc = {**fields, "id": ref.id, "createdAt": _now()}
        ref.set(doc)
        return Tag.model_validate(doc)

    @_persistence_errors
    def list_tags_for_job(self, job_id: str) -> List[Tag]:
        q = self._tags.where("jobId", "==", job_id)
        tags = [Tag.model_validate(doc.to_dict()) for doc in q.stream()]
        tags.sort(key=lambda t: (t.createdAt, t.id))
        return tags

    @_persistence_errors
    def delete_tag(self, tag_id: str) -> None:
        self._tags.document(tag_id).delete()
