"""Process-wide logging setup.

Console and rotating-file output share one formatter that masks secret values
read from the environment. When a record store is given, records are also
persisted to ``system_logs`` together with their ``meta`` extra. Persisted
rows are written from a listener thread fed by a queue.
"""

from __future__ import annotations

import atexit
import logging
import os
from logging.handlers import QueueListener, RotatingFileHandler
from typing import Any, Iterable, Mapping, Optional

from signal_router.adapters.log_handler import start_background_persistence
from signal_router.core.ports import RecordStorePort
from signal_router.settings import Settings

MASK = "***"
LINE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_PATH = "logs/signal_router.log"
DEFAULT_REDACT_VARS = ("TG_BOT_TOKEN", "HF_API_TOKEN", "API_HASH")


class SecretMaskingFormatter(logging.Formatter):
    """Formatter that replaces known secret values with ``***``."""

    def __init__(self, secrets: Iterable[str], fmt: str = LINE_FORMAT, datefmt: str = DATE_FORMAT) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first, so a secret that contains another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        for secret in self._secrets:
            text = text.replace(secret, MASK)
        return text


def secrets_from_env(redact: Mapping[str, Any]) -> list[str]:
    """Values of the environment variables named in the ``redact`` section."""

    if not redact.get("enabled", True):
        return []
    names = redact.get("patterns", DEFAULT_REDACT_VARS)
    return [os.environ[name] for name in names if os.getenv(name)]


def _level(value: Any) -> int:
    return getattr(logging, str(value).upper(), logging.INFO)


def _rotating_file(file_cfg: Mapping[str, Any], root: str) -> RotatingFileHandler:
    path = file_cfg.get("path", DEFAULT_LOG_PATH)
    if not os.path.isabs(path):
        path = os.path.join(root, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def configure_logging(settings: Settings, store: Optional[RecordStorePort] = None) -> Optional[QueueListener]:
    """Install the configured handlers on the root logger.

    Returns the listener that persists records, if one was started. It is
    stopped at exit; stopping it earlier flushes the queue.
    """

    config = settings.logging or {}
    if not config.get("enabled", True):
        return None

    level = _level(config.get("level", "INFO"))
    formatter = SecretMaskingFormatter(secrets_from_env(config.get("redact", {})))

    outputs: list[logging.Handler] = []
    if config.get("console", True):
        outputs.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        outputs.append(_rotating_file(file_cfg, settings.project_root))
    for output in outputs:
        output.setLevel(level)
        output.setFormatter(formatter)

    listener = None
    # Persisted lines are what the daily cleanup trims.
    if store is not None and config.get("persist", True):
        handler, listener = start_background_persistence(store, _level(config.get("persist_level", "INFO")))
        atexit.register(listener.stop)
        outputs.append(handler)

    if outputs:
        logging.basicConfig(level=level, handlers=outputs, force=True)
        # httpx request lines carry webhook URLs and the bot token.
        logging.getLogger("httpx").setLevel(logging.WARNING)
    return listener
