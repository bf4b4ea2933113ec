from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from ...exceptions import ConflictError
from ...models import PENDING, Job, RunResult
from .pipeline_executor import PipelineExecutor

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def select_next_job(jobs: List[Job]) -> Optional[Job]:
    """Earliest-created pending job; ties broken by id."""
    pending = [j for j in jobs if j.status == PENDING]
    if not pending:
        return None
    return min(pending, key=lambda j: (j.createdAt, j.id))


class Scheduler:
    """Polls the store on a fixed interval and hands one pending job per tick to the executor.

    `stop()` only prevents new ticks. A tick already in flight keeps running;
    callers that need a clean shutdown must `await wait_idle()` afterwards.
    """

    def __init__(self, executor: PipelineExecutor, sleep: Sleeper = asyncio.sleep) -> None:
        self.executor = executor
        self._sleep = sleep
        self._loop_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self.interval: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None

    def start(self, interval: float) -> None:
        """Begin polling every `interval` seconds. No-op if already running."""
        if self.is_running:
            return
        self.interval = interval
        self._loop_task = asyncio.create_task(self._poll_loop(interval))
        logger.info("Agent polling started (every %.1fs)", interval)

    def stop(self) -> None:
        """Cancel the polling timer. No-op if already stopped."""
        if self._loop_task is None:
            return
        self._loop_task.cancel()
        self._loop_task = None
        logger.info("Agent polling stopped")

    async def wait_idle(self) -> None:
        """Wait for the in-flight tick (if any) to finish."""
        task = self._tick_task
        if task is not None and not task.done():
            await asyncio.wait([task])

    async def _poll_loop(self, interval: float) -> None:
        while True:
            await self._sleep(interval)
            if self._tick_task is not None and not self._tick_task.done():
                logger.debug("Previous tick still running; skipping")
                continue
            # Separate task so cancelling the timer never interrupts a run
            self._tick_task = asyncio.create_task(self.tick())

    async def tick(self) -> Optional[RunResult]:
        """Process at most one pending job. Never raises."""
        if self.executor.busy:
            logger.debug("Executor busy with %s; skipping tick", self.executor.current_job_id)
            return None
        try:
            job = select_next_job(self.executor.store.list_jobs(status=PENDING))
            if job is None:
                return None
            logger.info("[%s] agent picked up pending job: %s (%s)", job.id, job.proteinTarget, job.simulationId)
            result = await self.executor.run(job.id)
        except ConflictError as exc:
            logger.info("Tick skipped: %s", exc)
            return None
        except Exception:  # noqa: BLE001
            logger.exception("Agent tick failed")
            return None

        if result.error and not result.skipped:
            logger.warning("[%s] pipeline run failed: %s", result.jobId, result.error)
        return result
