"""Concurrent execution of independent background tasks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackgroundTask:
    """A named unit of downstream work.

    ``run`` is a zero-argument coroutine factory so a planned batch can be
    inspected or dropped without leaving un-awaited coroutines behind.
    """

    name: str
    run: Callable[[], Awaitable[None]]


async def _run_guarded(task: BackgroundTask) -> None:
    # Each task owns its failure domain: errors stop here and never reach the
    # group, so one failing send cannot cancel its siblings.
    try:
        await task.run()
    except Exception as exc:
        LOGGER.exception(
            "Background task %s failed",
            task.name,
            extra={"meta": {"task": task.name, "error": str(exc)}},
        )


async def run_tasks(tasks: Sequence[BackgroundTask]) -> None:
    """Run all tasks concurrently and wait until every one has settled.

    Never raises because of a task failure.
    """

    if not tasks:
        return
    async with asyncio.TaskGroup() as group:
        for task in tasks:
            group.create_task(_run_guarded(task), name=task.name)
    LOGGER.debug("Background batch settled (%s tasks)", len(tasks))
