"""Background worker for webhook retries and log housekeeping.

Runs the retry sweep every `retry_interval_seconds` and the cleanup every
`cleanup_interval_seconds`. Several workers (or a worker plus the cron
endpoints) may run side by side.

Usage:
    python -m courier.worker
    python -m courier.worker --once
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from courier.config import Settings
from courier.logging import bind_context, configure_logging, get_logger
from courier.service import CourierService

logger = get_logger(__name__)


async def run_periodically(
    name: str,
    interval_seconds: float,
    job: Callable[[], Awaitable[object]],
    stop: asyncio.Event,
) -> None:
    """Run `job` every interval until `stop` is set. Job errors are logged."""
    bind_context(loop=name)
    logger.info("Worker loop started", interval_seconds=interval_seconds)

    while not stop.is_set():
        try:
            result = await job()
            logger.debug("Worker loop finished a run", result=result)
        except Exception:
            logger.exception("Worker loop error")

        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=interval_seconds)

    logger.info("Worker loop stopped")


async def run_once(service: CourierService) -> None:
    """One retry sweep followed by one cleanup."""
    result = await service.scheduler.process_retries()
    deleted = await service.scheduler.cleanup_old_logs()
    logger.info("Worker run complete", deleted=deleted, **result.to_dict())


async def run_worker(settings: Settings, stop: asyncio.Event | None = None) -> None:
    """Run both loops until `stop` is set (or forever)."""
    stop = stop or asyncio.Event()

    async with CourierService.create(settings) as service:
        await asyncio.gather(
            run_periodically(
                "webhook-retries",
                settings.retry_interval_seconds,
                service.scheduler.process_retries,
                stop,
            ),
            run_periodically(
                "webhook-cleanup",
                settings.cleanup_interval_seconds,
                service.scheduler.cleanup_old_logs,
                stop,
            ),
        )


async def main(once: bool = False) -> None:
    settings = Settings()
    configure_logging(level=settings.log_level, format=settings.log_format)

    if once:
        async with CourierService.create(settings) as service:
            await run_once(service)
        return

    await run_worker(settings)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Courier webhook retry worker")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and cleanup")
    args = parser.parse_args()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main(once=args.once))
