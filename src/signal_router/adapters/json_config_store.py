"""JSON file config store adapter.

The file holds one JSON object whose keys are the dynamic config keys
(``ROUTING_TABLE``, ``SCHEDULED_TASKS``). It is re-read on every access so
edits apply to the next message or tick without a restart.
"""

from __future__ import annotations

import json
import os

from signal_router.core.errors import ConfigUnavailable


class JsonFileConfigStore:
    """Read-only key/value config backed by a JSON file."""

    def __init__(self, path: str) -> None:
        self._path = path

    def get_list(self, key: str) -> list:
        """Return the list under ``key``; a missing key or file is an empty list."""

        if not os.path.exists(self._path):
            return []
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise ConfigUnavailable(f"cannot read {self._path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigUnavailable(f"{self._path} must contain a JSON object")
        value = data.get(key)
        if value is None:
            return []
        # Values may also be stored as JSON-encoded strings, as a plain KV store would.
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError as exc:
                raise ConfigUnavailable(f"{key} is not valid JSON: {exc}") from exc
        if not isinstance(value, list):
            raise ConfigUnavailable(f"{key} must be a list")
        return value
