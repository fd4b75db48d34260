"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for config, storage, inference and
notification adapters so that the core can be reused with different backends.
Record store methods are synchronous; the core runs them in worker threads.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Protocol, Sequence, Tuple

from signal_router.core.models import (
    LogEntry,
    Message,
    RecordKind,
    Report,
    SentimentRecord,
    TradeRecord,
    TrendingRow,
)


class ConfigStorePort(Protocol):
    """Read-only access to the dynamic routing/task configuration."""

    def get_list(self, key: str) -> list:
        """Return the list stored under ``key`` or raise ConfigUnavailable."""
        ...


class RecordStorePort(Protocol):
    """Append-only record storage required by the core pipeline."""

    def insert_trades(self, records: Sequence[TradeRecord]) -> None:
        ...

    def insert_sentiment_records(self, kind: RecordKind, records: Sequence[SentimentRecord]) -> None:
        ...

    def query_feed_mentions(self, since: datetime) -> List[TrendingRow]:
        ...

    def query_recent_analysis(self, since: datetime, limit: int) -> List[SentimentRecord]:
        ...

    def insert_log(self, entry: LogEntry) -> None:
        ...

    def delete_logs_before(self, cutoff: datetime) -> int:
        ...


class SentimentClassifierPort(Protocol):
    """Text classifier returning (label, score) pairs."""

    async def classify(self, text: str) -> List[Tuple[str, float]]:
        ...


class NotifierPort(Protocol):
    """Live signal notification required by the dispatch planner."""

    async def send_signal(self, message: Message, target: str) -> None:
        ...


class ReportNotifierPort(Protocol):
    """Report delivery required by the report aggregator."""

    async def send_report(self, report: Report, target: str) -> None:
        ...
