"""Dynamic configuration keys and degraded-read helper.

Rules and scheduled tasks are read fresh from the config store on every
invocation; there is no local cache.
"""

from __future__ import annotations

import logging
from typing import Any

from signal_router.core.errors import ConfigUnavailable
from signal_router.core.ports import ConfigStorePort

LOGGER = logging.getLogger(__name__)

ROUTING_TABLE_KEY = "ROUTING_TABLE"
SCHEDULED_TASKS_KEY = "SCHEDULED_TASKS"


def read_config_list(store: ConfigStorePort, key: str, empty_level: int = logging.WARNING) -> list:
    """Return the list stored under ``key``, or an empty list when unavailable.

    A missing or empty value is logged at ``empty_level``; read errors are
    always warnings.
    """

    try:
        value = store.get_list(key)
    except ConfigUnavailable as exc:
        LOGGER.warning("Config error [%s]: %s", key, exc, extra={"meta": {"key": key, "error": str(exc)}})
        return []
    if not value:
        LOGGER.log(empty_level, "Config [%s] missing or empty", key, extra={"meta": {"key": key}})
        return []
    return value


def enabled_flag(value: Any) -> bool:
    """Parse an entry's ``enabled`` field; anything but true or "true" is off."""

    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"
