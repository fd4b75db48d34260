"""SQLite storage adapter.

Implements the core RecordStorePort using a simple SQLite database. Every call
opens its own connection, so methods are safe to run from worker threads.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

from signal_router.core.errors import PersistenceFailure
from signal_router.core.models import (
    LogEntry,
    RecordKind,
    Sentiment,
    SentimentRecord,
    TradeRecord,
    TrendingRow,
)


def _to_epoch(value: datetime) -> int:
    return int(value.timestamp())


def _from_epoch(value: int) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _parse_sentiment(value: Optional[str]) -> Sentiment:
    try:
        return Sentiment(value)
    except ValueError:
        return Sentiment.NEUTRAL


class SQLiteRecordStore:
    """Thin SQLite wrapper that satisfies the RecordStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self, action: str) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"SQLite {action} failed: {exc}") from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - trades: tickers mentioned by SIGNAL messages
        - analysis / feeds: tickers with message sentiment (same layout)
        - system_logs: persisted structured log lines, trimmed daily
        """

        with self._session("init") as conn:
            # created_at is stored as epoch seconds everywhere so window
            # queries are plain integer comparisons.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS trades (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ticker TEXT NOT NULL,
                    raw_message TEXT,
                    source_channel TEXT,
                    source_message_id TEXT,
                    created_at INTEGER NOT NULL,
                    image_url TEXT
                )
                """
            )
            for table in (RecordKind.ANALYSIS.value, RecordKind.FEED.value):
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        ticker TEXT NOT NULL,
                        sentiment TEXT NOT NULL,
                        confidence REAL NOT NULL,
                        raw_message TEXT,
                        author TEXT,
                        source_channel TEXT,
                        created_at INTEGER NOT NULL,
                        image_url TEXT
                    )
                    """
                )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS system_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    level TEXT NOT NULL,
                    message TEXT,
                    meta TEXT,
                    created_at INTEGER NOT NULL
                )
                """
            )
            for table in ("trades", RecordKind.ANALYSIS.value, RecordKind.FEED.value, "system_logs"):
                conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{table}_created_at ON {table} (created_at)")

    def insert_trades(self, records: Sequence[TradeRecord]) -> None:
        """Insert all trade rows in one transaction."""

        if not records:
            return
        with self._session("trade insert") as conn:
            conn.executemany(
                """
                INSERT INTO trades (
                    ticker, raw_message, source_channel, source_message_id, created_at, image_url
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        record.ticker,
                        record.raw_message,
                        record.source_channel,
                        record.source_message_id,
                        _to_epoch(record.created_at),
                        record.image_url,
                    )
                    for record in records
                ],
            )

    def insert_sentiment_records(self, kind: RecordKind, records: Sequence[SentimentRecord]) -> None:
        """Insert analysis or feed rows in one transaction."""

        if not records:
            return
        # kind.value is a fixed table name, never user input.
        with self._session(f"{kind.value} insert") as conn:
            conn.executemany(
                f"""
                INSERT INTO {kind.value} (
                    ticker, sentiment, confidence, raw_message, author, source_channel, created_at, image_url
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        record.ticker,
                        record.sentiment.value,
                        record.confidence,
                        record.raw_message,
                        record.author,
                        record.source_channel,
                        _to_epoch(record.created_at),
                        record.image_url,
                    )
                    for record in records
                ],
            )

    def query_feed_mentions(self, since: datetime) -> List[TrendingRow]:
        """Return per-ticker feed counts (with per-sentiment counts) newer than ``since``."""

        with self._session("feed query") as conn:
            rows = conn.execute(
                """
                SELECT
                    ticker,
                    COUNT(*) AS count,
                    SUM(sentiment = 'BULLISH') AS bullish,
                    SUM(sentiment = 'BEARISH') AS bearish,
                    SUM(sentiment NOT IN ('BULLISH', 'BEARISH')) AS neutral
                FROM feeds
                WHERE created_at > ?
                GROUP BY ticker
                """,
                (_to_epoch(since),),
            ).fetchall()
        return [
            TrendingRow(
                ticker=row["ticker"],
                count=int(row["count"]),
                bullish=int(row["bullish"] or 0),
                bearish=int(row["bearish"] or 0),
                neutral=int(row["neutral"] or 0),
            )
            for row in rows
        ]

    def query_recent_analysis(self, since: datetime, limit: int) -> List[SentimentRecord]:
        """Return the newest analysis rows after ``since``, newest first."""

        with self._session("analysis query") as conn:
            rows = conn.execute(
                """
                SELECT ticker, sentiment, confidence, raw_message, author, source_channel, created_at, image_url
                FROM analysis
                WHERE created_at > ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (_to_epoch(since), limit),
            ).fetchall()
        return [
            SentimentRecord(
                ticker=row["ticker"],
                sentiment=_parse_sentiment(row["sentiment"]),
                confidence=float(row["confidence"]),
                raw_message=row["raw_message"] or "",
                author=row["author"] or "",
                source_channel=row["source_channel"] or "",
                created_at=_from_epoch(row["created_at"]),
                image_url=row["image_url"],
            )
            for row in rows
        ]

    def insert_log(self, entry: LogEntry) -> None:
        with self._session("log insert") as conn:
            conn.execute(
                "INSERT INTO system_logs (level, message, meta, created_at) VALUES (?, ?, ?, ?)",
                (
                    entry.level,
                    entry.message,
                    json.dumps(entry.meta, default=str) if entry.meta else None,
                    _to_epoch(entry.created_at),
                ),
            )

    def delete_logs_before(self, cutoff: datetime) -> int:
        """Delete old log rows and return the number removed."""

        with self._session("log cleanup") as conn:
            cur = conn.execute("DELETE FROM system_logs WHERE created_at < ?", (_to_epoch(cutoff),))
            return cur.rowcount
