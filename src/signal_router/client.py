"""Telethon client factory for the ``listen`` command.

The listener logs in as a user account and feeds incoming Telegram messages
into the same router as the HTTP endpoint.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

from signal_router.core.errors import ConfigUnavailable

DEFAULT_SESSION_NAME = "signal-router"

LOGGER = logging.getLogger(__name__)


def build_client() -> TelegramClient:
    """Create the listener client from API_ID, API_HASH and SESSION_NAME.

    The session file (``<SESSION_NAME>.session``) is created in the working
    directory on first login.
    """

    load_dotenv()
    credentials = {name: os.getenv(name) for name in ("API_ID", "API_HASH")}
    missing = [name for name, value in credentials.items() if not value]
    if missing:
        raise ConfigUnavailable(f"Telegram listener needs {', '.join(missing)} in the environment")

    session = os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME
    LOGGER.info("Opening Telegram session %s", session)
    return TelegramClient(session, int(credentials["API_ID"]), credentials["API_HASH"])
