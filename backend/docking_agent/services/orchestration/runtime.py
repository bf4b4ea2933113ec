from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...pipeline.insights import InsightAggregator
from ...services.firestore import FirestoreService
from .job_service import JobOrchestrationService
from .pipeline_executor import PipelineExecutor
from .scheduler import Scheduler


@dataclass
class AgentRuntime:
    """Per-process wiring: one store, one executor shared by every trigger path."""

    executor: PipelineExecutor
    scheduler: Scheduler
    jobs: JobOrchestrationService
    insights: InsightAggregator


def build_runtime(executor: Optional[PipelineExecutor] = None) -> AgentRuntime:
    executor = executor or PipelineExecutor(store=FirestoreService())
    return AgentRuntime(
        executor=executor,
        scheduler=Scheduler(executor),
        jobs=JobOrchestrationService(executor),
        insights=InsightAggregator(executor.store),
    )
