"""Error taxonomy shared by the core and adapters.

Only MalformedInput ever reaches an inbound caller. The other errors are
raised by adapters and absorbed by the component that owns the failure domain.
"""

from __future__ import annotations


class SignalRouterError(Exception):
    """Base class for all signal-router errors."""


class MalformedInput(SignalRouterError):
    """The inbound payload could not be parsed into a Message."""


class ConfigUnavailable(SignalRouterError):
    """The dynamic config store could not be read or parsed."""


class ClassifierFailure(SignalRouterError):
    """The sentiment classifier failed or returned an unusable response."""


class PersistenceFailure(SignalRouterError):
    """A record store write, query or delete failed."""


class NotificationFailure(SignalRouterError):
    """A notification channel rejected or failed to receive a message."""
