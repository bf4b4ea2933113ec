"""Tests for the polling scheduler and its interaction with manual triggers."""

import asyncio

from docking_agent.services.orchestration.scheduler import Scheduler, select_next_job


async def _fast_sleep(_interval):
    await asyncio.sleep(0)


async def _spin(times=50):
    for _ in range(times):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# tick
# ---------------------------------------------------------------------------

class TestTick:
    def test_processes_earliest_pending_job_only(self, executor, store, new_job):
        first = new_job(ligand="Erlotinib")
        second = new_job(ligand="Gefitinib")
        scheduler = Scheduler(executor)

        result = asyncio.run(scheduler.tick())

        assert result.jobId == first.id
        assert store.get_job(first.id).status == "analyzed"
        assert store.get_job(second.id).status == "pending"

    def test_no_pending_job_is_noop(self, executor, store, new_job):
        job = new_job()
        store.update_job(job.id, {"status": "failed", "error": "earlier"})
        ops_before = list(store.ops)

        assert asyncio.run(Scheduler(executor).tick()) is None
        assert store.ops == ops_before

    def test_terminal_jobs_are_never_revisited(self, executor, store, reporter, new_job):
        ok = new_job(ligand="A")
        scheduler = Scheduler(executor)
        asyncio.run(scheduler.tick())
        reporter.error = RuntimeError("boom")
        bad = new_job(ligand="B")
        asyncio.run(scheduler.tick())

        assert asyncio.run(scheduler.tick()) is None
        assert store.get_job(ok.id).status == "analyzed"
        assert store.get_job(bad.id).status == "failed"
        assert len(store.reports) == 1

    def test_store_failure_is_isolated(self, executor, store, new_job):
        new_job()
        scheduler = Scheduler(executor)
        store.fail_on.add("list_jobs")

        assert asyncio.run(scheduler.tick()) is None

        store.fail_on.clear()
        assert asyncio.run(scheduler.tick()).success is True

    def test_persistence_error_in_run_is_isolated(self, executor, store, new_job):
        job = new_job()
        store.fail_on.add("create_report")

        assert asyncio.run(Scheduler(executor).tick()) is None
        assert store.get_job(job.id).status == "processing"

    def test_report_failure_is_returned(self, executor, store, reporter, new_job):
        reporter.error = RuntimeError("no model")
        job = new_job()

        result = asyncio.run(Scheduler(executor).tick())

        assert result.success is False
        assert result.error
        assert store.get_job(job.id).status == "failed"

    def test_select_next_job_ignores_list_order(self, store, new_job):
        older = new_job(ligand="A")
        new_job(ligand="B")
        # list_jobs returns newest first
        assert select_next_job(store.list_jobs(status="pending")).id == older.id
        assert select_next_job([]) is None


# ---------------------------------------------------------------------------
# start / stop
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_start_and_stop_are_idempotent(self, executor):
        async def scenario():
            scheduler = Scheduler(executor, sleep=_fast_sleep)
            scheduler.start(5)
            task = scheduler._loop_task
            scheduler.start(1)
            assert scheduler._loop_task is task
            assert scheduler.interval == 5
            assert scheduler.is_running
            scheduler.stop()
            scheduler.stop()
            assert not scheduler.is_running
            await _spin(5)
            assert task.cancelled()

        asyncio.run(scenario())

    def test_polling_drains_backlog_one_job_per_tick(self, executor, store, new_job):
        jobs = [new_job(ligand=f"L{i}") for i in range(3)]

        async def scenario():
            scheduler = Scheduler(executor, sleep=_fast_sleep)
            scheduler.start(5)
            await _spin(200)
            scheduler.stop()
            await scheduler.wait_idle()

        asyncio.run(scenario())
        assert all(store.get_job(j.id).status == "analyzed" for j in jobs)
        # Reports are stored in processing order: oldest job first
        assert [doc["jobId"] for doc in store.reports.values()] == [j.id for j in jobs]

    def test_stop_does_not_interrupt_in_flight_run(self, executor, store, reporter, new_job):
        job = new_job()

        async def scenario():
            reporter.gate = asyncio.Event()
            reporter.entered = asyncio.Event()
            scheduler = Scheduler(executor, sleep=_fast_sleep)
            scheduler.start(5)
            await reporter.entered.wait()
            scheduler.stop()
            await _spin(5)
            assert store.get_job(job.id).status == "processing"
            reporter.gate.set()
            await scheduler.wait_idle()

        asyncio.run(scenario())
        assert store.get_job(job.id).status == "analyzed"


# ---------------------------------------------------------------------------
# Scheduler + manual trigger share one execution guard
# ---------------------------------------------------------------------------

class TestSharedGuard:
    def test_at_most_one_run_active(self, runtime, store, reporter, new_job):
        first = new_job(ligand="A")
        second = new_job(ligand="B")

        async def scenario():
            return await asyncio.gather(
                runtime.scheduler.tick(),
                runtime.jobs.request_report(second.id),
                runtime.scheduler.tick(),
            )

        tick_a, manual, tick_b = asyncio.run(scenario())

        assert reporter.max_active == 1
        assert tick_a.jobId == first.id
        assert manual.success is True
        assert tick_b is None
        assert len(store.list_reports_for_job(first.id)) == 1
        assert len(store.list_reports_for_job(second.id)) == 1

    def test_tick_skipped_while_manual_run_in_flight(self, runtime, store, reporter, new_job):
        manual_job = new_job(ligand="A")
        waiting = new_job(ligand="B")

        async def scenario():
            reporter.gate = asyncio.Event()
            reporter.entered = asyncio.Event()
            manual = asyncio.create_task(runtime.jobs.request_report(manual_job.id))
            await reporter.entered.wait()
            skipped = await runtime.scheduler.tick()
            reporter.gate.set()
            await manual
            return skipped

        assert asyncio.run(scenario()) is None
        assert store.get_job(manual_job.id).status == "analyzed"
        assert store.get_job(waiting.id).status == "pending"
