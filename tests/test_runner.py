from __future__ import annotations

import asyncio

from signal_router.core.runner import BackgroundTask, run_tasks


def test_every_task_runs_even_when_one_fails() -> None:
    finished = []

    async def slow_ok() -> None:
        await asyncio.sleep(0.01)
        finished.append("slow")

    async def boom() -> None:
        raise RuntimeError("boom")

    async def fast_ok() -> None:
        finished.append("fast")

    tasks = [
        BackgroundTask(name="slow", run=slow_ok),
        BackgroundTask(name="boom", run=boom),
        BackgroundTask(name="fast", run=fast_ok),
    ]

    asyncio.run(run_tasks(tasks))

    assert sorted(finished) == ["fast", "slow"]


def test_tasks_run_concurrently() -> None:
    order = []

    async def first() -> None:
        order.append("first-start")
        await asyncio.sleep(0.02)
        order.append("first-end")

    async def second() -> None:
        order.append("second-start")
        await asyncio.sleep(0)
        order.append("second-end")

    asyncio.run(run_tasks([BackgroundTask(name="a", run=first), BackgroundTask(name="b", run=second)]))

    assert order.index("second-end") < order.index("first-end")


def test_empty_batch_is_a_no_op() -> None:
    asyncio.run(run_tasks([]))


def test_failures_are_logged_with_task_name(caplog) -> None:
    async def boom() -> None:
        raise ValueError("bad row")

    with caplog.at_level("ERROR"):
        asyncio.run(run_tasks([BackgroundTask(name="signals:save-trades", run=boom)]))

    assert "signals:save-trades" in caplog.text
