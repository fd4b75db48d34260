"""Routing rule validation and matching logic (core domain)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Tuple

from signal_router.core.config import enabled_flag
from signal_router.core.models import Message

LOGGER = logging.getLogger(__name__)

TEST_RULE_MARKER = "test"


class RuleType(str, Enum):
    SIGNAL = "SIGNAL"
    ANALYSIS = "ANALYSIS"
    FEED = "FEED"


@dataclass(frozen=True)
class Routes:
    """Notification targets of a rule, grouped by channel kind."""

    telegram: Tuple[str, ...] = ()
    discord: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RoutingRule:
    """Validated routing rule used by the pipeline."""

    name: str
    type: RuleType
    enabled: bool = False
    channel_ids: frozenset[str] = field(default_factory=frozenset)
    user_ids: frozenset[str] = field(default_factory=frozenset)
    routes: Routes = field(default_factory=Routes)


@dataclass(frozen=True)
class RuleMatch:
    """A rule that applies to a message, with the action category it implies."""

    rule: RoutingRule
    category: RuleType

    @property
    def rule_name(self) -> str:
        return self.rule.name


def _as_id_set(value: Any) -> frozenset[str]:
    if not value:
        return frozenset()
    if isinstance(value, (str, int)):
        value = [value]
    return frozenset(str(item) for item in value)


def _as_str_tuple(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, (str, int)):
        value = [value]
    return tuple(str(item) for item in value if item)


def build_rule(raw: dict) -> RoutingRule:
    """Validate one raw rule dict, filling defaults for optional fields.

    Raises ValueError when the name or type is missing or unknown.
    """

    name = raw.get("name")
    if not name:
        raise ValueError("rule is missing a name")
    try:
        rule_type = RuleType(str(raw.get("type", "")).upper())
    except ValueError:
        raise ValueError(f"rule {name!r} has unknown type {raw.get('type')!r}") from None

    match = raw.get("match") or {}
    routes = raw.get("routes") or {}
    return RoutingRule(
        name=str(name),
        type=rule_type,
        enabled=enabled_flag(raw.get("enabled")),
        channel_ids=_as_id_set(match.get("channel_id")),
        user_ids=_as_id_set(match.get("user_id")),
        routes=Routes(
            telegram=_as_str_tuple(routes.get("telegram")),
            discord=_as_str_tuple(routes.get("discord")),
        ),
    )


def build_rules(rules_config: Iterable[Any]) -> List[RoutingRule]:
    """Validate the routing table, skipping entries that cannot be used.

    Disabled rules are kept so the table mirrors the config; matching ignores
    them.
    """

    rules: List[RoutingRule] = []
    for index, raw in enumerate(rules_config):
        if not isinstance(raw, dict):
            LOGGER.warning("Skipping routing rule #%s: not an object", index)
            continue
        try:
            rules.append(build_rule(raw))
        except ValueError as exc:
            LOGGER.warning("Skipping routing rule #%s: %s", index, exc)
    return rules


def rule_applies(rule: RoutingRule, message: Message) -> bool:
    """Return True when the rule's id filters (or the test override) accept the message."""

    if message.is_test and TEST_RULE_MARKER in rule.name.lower():
        return True
    match_channel = not rule.channel_ids or message.channel_id in rule.channel_ids
    match_user = not rule.user_ids or message.author_id in rule.user_ids
    return match_channel and match_user


def match_rules(message: Message, rules: Iterable[RoutingRule]) -> List[RuleMatch]:
    """Return every enabled rule that applies to the message, in table order.

    Matching is not first-match-wins: each applicable rule contributes its own
    dispatch tasks.
    """

    return [
        RuleMatch(rule=rule, category=rule.type)
        for rule in rules
        if rule.enabled and rule_applies(rule, message)
    ]
