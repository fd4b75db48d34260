"""Minute-granularity tick loop driving the report aggregator."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from signal_router.core.reports import ReportAggregator
from signal_router.core.runner import run_tasks

LOGGER = logging.getLogger(__name__)


def next_minute_boundary(timestamp: float) -> int:
    """Epoch seconds of the next whole minute strictly after ``timestamp``."""

    return (math.floor(timestamp / 60) + 1) * 60


async def run_tick(aggregator: ReportAggregator, now: datetime) -> None:
    """Run one tick and wait for all of its jobs to settle."""

    await run_tasks(await aggregator.tick(now))


async def run_scheduler(
    aggregator: ReportAggregator,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Tick once per minute boundary until cancelled.

    A tick's jobs run in the background so a slow report never delays the
    next tick. Cancelling the loop cancels the jobs still in flight.
    """

    last_boundary = 0
    async with asyncio.TaskGroup() as group:
        while True:
            # An early wake-up must not fire the same minute twice.
            boundary = max(next_minute_boundary(clock()), last_boundary + 60)
            await sleep(max(boundary - clock(), 0))
            last_boundary = boundary
            now = datetime.fromtimestamp(boundary, tz=timezone.utc)
            try:
                jobs = await aggregator.tick(now)
            except Exception:
                LOGGER.exception("Scheduled tick failed at %s", now.isoformat())
                continue
            if jobs:
                group.create_task(run_tasks(jobs))
