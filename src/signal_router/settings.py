"""Static configuration for signal-router.

Process settings (paths, endpoints, logging) live in a single JSON file for
quick edits without touching Python. Secrets come from the environment, read
via python-dotenv. The routing table and scheduled tasks are NOT here: they
live in the dynamic config store and are re-read on every message and tick.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from signal_router.core.lexicon import DEFAULT_AMBIGUOUS_PATH, DEFAULT_TICKERS_PATH

CONFIG_ENV_VAR = "SIGNAL_ROUTER_CONFIG"
DEFAULT_CONFIG_NAME = "config.json"


@dataclass(frozen=True)
class Settings:
    """Resolved process settings."""

    project_root: str
    db_path: str
    config_store_path: str
    tickers_path: str = DEFAULT_TICKERS_PATH
    ambiguous_path: str = DEFAULT_AMBIGUOUS_PATH
    context_path: Optional[str] = None
    classifier_url: Optional[str] = None
    classifier_timeout: float = 10.0
    hf_api_token: Optional[str] = None
    tg_bot_token: Optional[str] = None
    http_timeout: float = 10.0
    discord_username: str = "Signal Router"
    discord_avatar_url: Optional[str] = None
    report_username: str = "Market Reporter"
    report_avatar_url: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 8787
    scheduler_enabled: bool = True
    logging: dict = field(default_factory=dict)


def default_config_path() -> str:
    return os.getenv(CONFIG_ENV_VAR) or os.path.join(os.getcwd(), DEFAULT_CONFIG_NAME)


def _load_json_config(path: str) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve(root: str, path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return path if os.path.isabs(path) else os.path.join(root, path)


def load_settings(path: Optional[str] = None) -> Settings:
    """Read config.json (and .env) into a Settings object.

    Relative paths in the file are resolved against the file's directory.
    """

    load_dotenv()
    path = os.path.abspath(path or default_config_path())
    root = os.path.dirname(path)
    config = _load_json_config(path)

    storage = config.get("storage", {})
    lexicon = config.get("lexicon", {})
    classifier = config.get("classifier", {})
    notifications = config.get("notifications", {})
    server = config.get("server", {})
    scheduler = config.get("scheduler", {})

    return Settings(
        project_root=root,
        db_path=_resolve(root, storage.get("db_path", "signal_router.db")),
        # The dynamic routing/task table; edits apply without a restart.
        config_store_path=_resolve(root, storage.get("config_store_path", "routing.json")),
        tickers_path=_resolve(root, lexicon.get("tickers_path")) or DEFAULT_TICKERS_PATH,
        ambiguous_path=_resolve(root, lexicon.get("ambiguous_path")) or DEFAULT_AMBIGUOUS_PATH,
        context_path=_resolve(root, lexicon.get("context_path")),
        classifier_url=classifier.get("url"),
        classifier_timeout=float(classifier.get("timeout", 10.0)),
        hf_api_token=os.getenv("HF_API_TOKEN"),
        tg_bot_token=os.getenv("TG_BOT_TOKEN"),
        http_timeout=float(notifications.get("http_timeout", 10.0)),
        discord_username=notifications.get("discord_username", "Signal Router"),
        discord_avatar_url=notifications.get("discord_avatar_url"),
        report_username=notifications.get("report_username", "Market Reporter"),
        report_avatar_url=notifications.get("report_avatar_url"),
        host=server.get("host", "127.0.0.1"),
        port=int(server.get("port", 8787)),
        scheduler_enabled=bool(scheduler.get("enabled", True)),
        logging=config.get("logging", {}),
    )
