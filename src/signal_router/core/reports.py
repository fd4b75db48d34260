"""Scheduled report aggregation (core domain).

The aggregator keeps no state of its own. Each tick reads the scheduled task
table fresh, decides which tasks are due for the current epoch minute and
returns the batch of report jobs to run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from signal_router.core.config import SCHEDULED_TASKS_KEY, enabled_flag, read_config_list
from signal_router.core.models import EmbedField, Report, Sentiment, SentimentRecord, TrendingRow
from signal_router.core.ports import ConfigStorePort, RecordStorePort, ReportNotifierPort
from signal_router.core.runner import BackgroundTask, run_tasks

LOGGER = logging.getLogger(__name__)

MINUTES_PER_DAY = 1440
# 03:00 UTC.
LOG_CLEANUP_MINUTE_OF_DAY = 180
LOG_RETENTION = timedelta(days=7)

TRENDING_LIMIT = 10
ANALYSIS_LIMIT = 15
PREVIEW_CHARS = 60

TRENDING_COLOR = 0xFF9900
ANALYSIS_COLOR = 0x9B59B6
REPORT_FOOTER = "Signal Router Analytics"

TRENDING_ICONS = {Sentiment.BULLISH: "🟢", Sentiment.BEARISH: "🔴", Sentiment.NEUTRAL: "⚪"}
ANALYSIS_ICONS = {Sentiment.BULLISH: "🚀", Sentiment.BEARISH: "📉", Sentiment.NEUTRAL: "⚖️"}


class TaskType(str, Enum):
    TRENDING_FEED = "TRENDING_FEED"
    ANALYSIS_SUMMARY = "ANALYSIS_SUMMARY"


@dataclass(frozen=True)
class ScheduledTask:
    """Validated scheduled report definition."""

    name: str
    type: TaskType
    interval_minutes: int
    lookback_minutes: int
    enabled: bool = False
    min_mentions: int = 1
    target_hooks: Tuple[str, ...] = ()


def _positive_int(value: Any, label: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"{label} must be a whole number, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be an integer, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"{label} must be > 0, got {number}")
    return number


def build_scheduled_task(raw: dict) -> ScheduledTask:
    """Validate one raw task dict. Raises ValueError for unusable entries."""

    name = raw.get("name")
    if not name:
        raise ValueError("task is missing a name")
    try:
        task_type = TaskType(str(raw.get("type", "")).upper())
    except ValueError:
        raise ValueError(f"task {name!r} has unknown type {raw.get('type')!r}") from None

    interval = _positive_int(raw.get("interval"), "interval")
    lookback = raw.get("lookback_minutes")
    hooks = raw.get("target_hooks") or []
    if isinstance(hooks, str):
        hooks = [hooks]
    return ScheduledTask(
        name=str(name),
        type=task_type,
        interval_minutes=interval,
        lookback_minutes=_positive_int(lookback, "lookback_minutes") if lookback else interval,
        enabled=enabled_flag(raw.get("enabled")),
        min_mentions=_positive_int(raw.get("min_mentions") or 1, "min_mentions"),
        target_hooks=tuple(str(hook) for hook in hooks if hook),
    )


def build_scheduled_tasks(tasks_config: Iterable[Any]) -> List[ScheduledTask]:
    tasks: List[ScheduledTask] = []
    for index, raw in enumerate(tasks_config):
        if not isinstance(raw, dict):
            LOGGER.warning("Skipping scheduled task #%s: not an object", index)
            continue
        try:
            tasks.append(build_scheduled_task(raw))
        except ValueError as exc:
            LOGGER.warning("Skipping scheduled task #%s: %s", index, exc)
    return tasks


def epoch_minute(now: datetime) -> int:
    return int(now.timestamp() // 60)


def is_due(task: ScheduledTask, minute: int) -> bool:
    return task.enabled and minute % task.interval_minutes == 0


def dominant_sentiment(row: TrendingRow) -> Sentiment:
    """Majority sentiment of a ticker group; any tie for the top count is NEUTRAL."""

    counts = [
        (row.bullish, Sentiment.BULLISH),
        (row.bearish, Sentiment.BEARISH),
        (row.neutral, Sentiment.NEUTRAL),
    ]
    top = max(count for count, _ in counts)
    leaders = [sentiment for count, sentiment in counts if count == top]
    if top == 0 or len(leaders) > 1:
        return Sentiment.NEUTRAL
    return leaders[0]


def rank_trending(rows: Iterable[TrendingRow], min_mentions: int, limit: int = TRENDING_LIMIT) -> List[TrendingRow]:
    """Keep groups with at least ``min_mentions`` rows, most mentioned first."""

    kept = [row for row in rows if row.count >= min_mentions]
    kept.sort(key=lambda row: (-row.count, row.ticker))
    return kept[:limit]


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def build_trending_report(task: ScheduledTask, rows: Sequence[TrendingRow], now: datetime) -> Optional[Report]:
    if not rows:
        return None
    lines = [
        f"**#{rank} {row.ticker}** {TRENDING_ICONS[dominant_sentiment(row)]} ({row.count} mentions)"
        for rank, row in enumerate(rows, start=1)
    ]
    return Report(
        title=f"🔥 Market Heatmap (Last {task.lookback_minutes}m)",
        description="\n".join(lines),
        color=TRENDING_COLOR,
        footer_text=REPORT_FOOTER,
        created_at=now,
    )


def build_analysis_report(task: ScheduledTask, records: Sequence[SentimentRecord], now: datetime) -> Optional[Report]:
    if not records:
        return None
    fields = tuple(
        EmbedField(
            name=f"{ANALYSIS_ICONS.get(record.sentiment, ANALYSIS_ICONS[Sentiment.NEUTRAL])} "
            f"{record.ticker} ({record.author})",
            value=preview(record.raw_message),
            inline=False,
        )
        for record in records
    )
    return Report(
        title=f"🧠 Institutional Views (Last {task.lookback_minutes / 60:.1f}h)",
        fields=fields,
        color=ANALYSIS_COLOR,
        created_at=now,
    )


class ReportAggregator:
    """Decides which scheduled jobs run on a tick and owns the job bodies."""

    def __init__(self, config_store: ConfigStorePort, store: RecordStorePort, notifier: ReportNotifierPort) -> None:
        self._config_store = config_store
        self._store = store
        self._notifier = notifier

    def load_tasks(self) -> List[ScheduledTask]:
        # An empty task table is a normal setup.
        return build_scheduled_tasks(read_config_list(self._config_store, SCHEDULED_TASKS_KEY, logging.DEBUG))

    async def tick(self, now: datetime) -> List[BackgroundTask]:
        """Return the jobs due at ``now`` (not yet started)."""

        minute = epoch_minute(now)
        jobs: List[BackgroundTask] = []

        if minute % MINUTES_PER_DAY == LOG_CLEANUP_MINUTE_OF_DAY:
            jobs.append(BackgroundTask(name="maintenance:cleanup-logs", run=lambda: self.cleanup_logs(now)))

        for task in await asyncio.to_thread(self.load_tasks):
            if not is_due(task, minute):
                continue
            LOGGER.info("Triggering scheduled task: %s", task.name, extra={"meta": {"task": task.name}})
            jobs.append(BackgroundTask(name=f"report:{task.name}", run=self._bind_report(task, now)))
        return jobs

    def _bind_report(self, task: ScheduledTask, now: datetime):
        return lambda: self.generate_and_send(task, now)

    async def build_report(self, task: ScheduledTask, now: datetime) -> Optional[Report]:
        """Query the lookback window and render the task's report, if any rows qualify."""

        since = now - timedelta(minutes=task.lookback_minutes)
        if task.type is TaskType.TRENDING_FEED:
            rows = await asyncio.to_thread(self._store.query_feed_mentions, since)
            return build_trending_report(task, rank_trending(rows, task.min_mentions), now)
        records = await asyncio.to_thread(self._store.query_recent_analysis, since, ANALYSIS_LIMIT)
        return build_analysis_report(task, records, now)

    async def generate_and_send(self, task: ScheduledTask, now: datetime) -> None:
        report = await self.build_report(task, now)
        if report is None:
            LOGGER.debug("No rows for scheduled task %s; nothing sent", task.name)
            return
        if not task.target_hooks:
            LOGGER.warning("Scheduled task %s has no target hooks", task.name)
            return

        # Each hook is its own failure domain, like live notifications.
        await run_tasks(
            [
                BackgroundTask(name=f"report:{task.name}:send", run=self._bind_send(report, hook))
                for hook in task.target_hooks
            ]
        )
        LOGGER.info("Report sent: %s", task.name, extra={"meta": {"task": task.name, "type": task.type.value}})

    def _bind_send(self, report: Report, hook: str):
        return lambda: self._notifier.send_report(report, hook)

    async def cleanup_logs(self, now: datetime) -> None:
        deleted = await asyncio.to_thread(self._store.delete_logs_before, now - LOG_RETENTION)
        LOGGER.info("System logs cleaned: %s deleted", deleted, extra={"meta": {"deleted": deleted}})
