from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from signal_router.adapters.log_handler import RecordStoreLogHandler
from signal_router.adapters.sqlite_storage import SQLiteRecordStore
from signal_router.core.errors import PersistenceFailure
from signal_router.core.models import LogEntry, RecordKind, Sentiment, SentimentRecord, TradeRecord

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _store(tmp_path) -> SQLiteRecordStore:
    store = SQLiteRecordStore(str(tmp_path / "records.db"))
    store.init_db()
    return store


def _sentiment(ticker: str, sentiment: Sentiment, created_at: datetime, text: str = "note") -> SentimentRecord:
    return SentimentRecord(
        ticker=ticker,
        sentiment=sentiment,
        confidence=0.9,
        raw_message=text,
        author="desk",
        source_channel="research",
        created_at=created_at,
    )


def _count(tmp_path, table: str) -> int:
    conn = sqlite3.connect(str(tmp_path / "records.db"))
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


def test_init_db_is_idempotent(tmp_path) -> None:
    store = _store(tmp_path)
    store.init_db()
    for table in ("trades", "analysis", "feeds", "system_logs"):
        assert _count(tmp_path, table) == 0


def test_insert_trades_writes_one_row_per_record(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_trades(
        [
            TradeRecord("AAPL", "BUY AAPL TSLA", "alpha", "m1", NOW, "https://img/1.png"),
            TradeRecord("TSLA", "BUY AAPL TSLA", "alpha", "m1", NOW, "https://img/1.png"),
        ]
    )
    store.insert_trades([])
    assert _count(tmp_path, "trades") == 2


def test_sentiment_rows_go_to_the_table_of_their_kind(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_sentiment_records(RecordKind.ANALYSIS, [_sentiment("NVDA", Sentiment.BULLISH, NOW)])
    store.insert_sentiment_records(
        RecordKind.FEED,
        [_sentiment("NVDA", Sentiment.BEARISH, NOW), _sentiment("AMD", Sentiment.NEUTRAL, NOW)],
    )
    assert _count(tmp_path, "analysis") == 1
    assert _count(tmp_path, "feeds") == 2


def test_feed_mentions_group_inside_the_window(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_sentiment_records(
        RecordKind.FEED,
        [
            _sentiment("AAPL", Sentiment.BULLISH, NOW),
            _sentiment("AAPL", Sentiment.BULLISH, NOW - timedelta(minutes=5)),
            _sentiment("AAPL", Sentiment.BEARISH, NOW - timedelta(minutes=10)),
            _sentiment("AAPL", Sentiment.NEUTRAL, NOW - timedelta(hours=3)),
            _sentiment("TSLA", Sentiment.NEUTRAL, NOW),
        ],
    )

    rows = {row.ticker: row for row in store.query_feed_mentions(NOW - timedelta(hours=1))}

    assert set(rows) == {"AAPL", "TSLA"}
    assert (rows["AAPL"].count, rows["AAPL"].bullish, rows["AAPL"].bearish, rows["AAPL"].neutral) == (3, 2, 1, 0)
    assert (rows["TSLA"].count, rows["TSLA"].neutral) == (1, 1)


def test_recent_analysis_is_newest_first_and_limited(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_sentiment_records(
        RecordKind.ANALYSIS,
        [
            _sentiment(f"T{i}", Sentiment.BULLISH, NOW - timedelta(minutes=i), text=f"view {i}")
            for i in range(5)
        ],
    )
    store.insert_sentiment_records(
        RecordKind.ANALYSIS, [_sentiment("OLD", Sentiment.BEARISH, NOW - timedelta(days=1))]
    )

    records = store.query_recent_analysis(NOW - timedelta(hours=1), limit=3)

    assert [record.ticker for record in records] == ["T0", "T1", "T2"]
    assert records[0].sentiment is Sentiment.BULLISH
    assert records[0].created_at == NOW
    assert records[0].raw_message == "view 0"


def test_delete_logs_before_cutoff(tmp_path) -> None:
    store = _store(tmp_path)
    store.insert_log(LogEntry("INFO", "fresh", NOW, {"task": "x"}))
    store.insert_log(LogEntry("INFO", "stale", NOW - timedelta(days=8)))
    store.insert_log(LogEntry("ERROR", "ancient", NOW - timedelta(days=30)))

    deleted = store.delete_logs_before(NOW - timedelta(days=7))

    assert deleted == 2
    assert _count(tmp_path, "system_logs") == 1


def test_sqlite_errors_become_persistence_failures(tmp_path) -> None:
    store = SQLiteRecordStore(str(tmp_path / "no-tables.db"))
    with pytest.raises(PersistenceFailure):
        store.insert_trades([TradeRecord("AAPL", "x", "alpha", "m1", NOW)])


def test_log_handler_persists_meta(tmp_path) -> None:
    store = _store(tmp_path)
    logger = logging.getLogger("signal_router.tests.persist")
    logger.propagate = False
    handler = RecordStoreLogHandler(store, level=logging.INFO)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        logger.debug("too quiet")
        logger.info("Saved trades: %s", "AAPL", extra={"meta": {"count": 1}})
    finally:
        logger.removeHandler(handler)

    conn = sqlite3.connect(str(tmp_path / "records.db"))
    try:
        rows = conn.execute("SELECT level, message, meta FROM system_logs").fetchall()
    finally:
        conn.close()
    assert rows == [("INFO", "Saved trades: AAPL", '{"count": 1}')]
