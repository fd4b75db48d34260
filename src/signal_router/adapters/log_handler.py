"""Logging handler that persists structured log lines to the record store."""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from queue import Queue
from typing import Tuple

from signal_router.core.models import LogEntry
from signal_router.core.ports import RecordStorePort


class RecordStoreLogHandler(logging.Handler):
    """Write each record, with its ``meta`` extra, into ``system_logs``.

    Storage errors go through ``handleError`` and never reach the code that
    emitted the log line.
    """

    def __init__(self, store: RecordStorePort, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self._store = store

    def emit(self, record: logging.LogRecord) -> None:
        try:
            meta = getattr(record, "meta", None) or {}
            if record.exc_info and "stack" not in meta:
                meta = {**meta, "stack": logging.Formatter().formatException(record.exc_info)}
            self._store.insert_log(
                LogEntry(
                    level=record.levelname,
                    message=record.getMessage(),
                    meta=meta,
                    created_at=datetime.fromtimestamp(record.created, tz=timezone.utc),
                )
            )
        except Exception:
            self.handleError(record)


class _MetaQueueHandler(QueueHandler):
    """Queue handler that keeps a record's traceback in ``meta``.

    ``QueueHandler.prepare`` folds the traceback into the message text; the
    persisted row stores it under ``meta["stack"]`` instead.
    """

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        if record.exc_info:
            record = copy.copy(record)
            meta = getattr(record, "meta", None) or {}
            record.meta = {**meta, "stack": logging.Formatter().formatException(record.exc_info)}
            record.exc_info = None
            record.exc_text = None
        return super().prepare(record)


def start_background_persistence(
    store: RecordStorePort,
    level: int = logging.INFO,
) -> Tuple[logging.Handler, QueueListener]:
    """Return a queue handler for the root logger and its started listener.

    Records are written by the listener thread, so logging from the event
    loop never waits on SQLite. Stop the listener to flush pending rows.
    """

    queue: Queue = Queue(-1)
    listener = QueueListener(queue, RecordStoreLogHandler(store, level=level), respect_handler_level=True)
    handler = _MetaQueueHandler(queue)
    handler.setLevel(level)
    listener.start()
    return handler, listener
