"""Tests for the background worker loop."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from courier.service import CourierService
from courier.webhooks import RetrySweepResult
from courier.worker import run_once, run_periodically


class TestRunPeriodically:
    """Tests for run_periodically."""

    async def test_runs_until_stopped(self):
        stop = asyncio.Event()
        calls = 0

        async def job():
            nonlocal calls
            calls += 1
            if calls == 3:
                stop.set()

        await asyncio.wait_for(run_periodically("test", 0.01, job, stop), timeout=2)

        assert calls == 3

    async def test_job_errors_do_not_stop_loop(self):
        stop = asyncio.Event()
        job = AsyncMock(side_effect=[RuntimeError("boom"), None])

        async def stop_after_second_call():
            while job.await_count < 2:
                await asyncio.sleep(0.005)
            stop.set()

        await asyncio.wait_for(
            asyncio.gather(run_periodically("test", 0.01, job, stop), stop_after_second_call()),
            timeout=2,
        )

        assert job.await_count >= 2

    async def test_stop_interrupts_wait(self):
        stop = asyncio.Event()
        job = AsyncMock(side_effect=lambda: stop.set())

        await asyncio.wait_for(run_periodically("test", 3600, job, stop), timeout=2)

        job.assert_awaited_once()


class TestRunOnce:
    async def test_sweeps_then_cleans_up(self):
        service = MagicMock(spec=CourierService)
        service.scheduler = MagicMock()
        service.scheduler.process_retries = AsyncMock(return_value=RetrySweepResult(processed=1))
        service.scheduler.cleanup_old_logs = AsyncMock(return_value=4)

        await run_once(service)

        service.scheduler.process_retries.assert_awaited_once()
        service.scheduler.cleanup_old_logs.assert_awaited_once()
