"""Core message routing pipeline.

This module is integration-agnostic. It only relies on ports for config,
storage, inference and notifications, so the HTTP endpoint and the Telegram
listener share exactly the same routing behavior.

The pipeline order is:
1) Extract tickers from the raw text
2) Load the routing table (fresh, degraded to empty on failure)
3) Match every enabled rule
4) Plan the downstream task batch

The batch is returned, not awaited: callers decide when it runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

from signal_router.core.config import ROUTING_TABLE_KEY, read_config_list
from signal_router.core.dispatch import DispatchPlanner
from signal_router.core.lexicon import Lexicon
from signal_router.core.models import Message
from signal_router.core.ports import ConfigStorePort
from signal_router.core.rules_engine import RoutingRule, build_rules, match_rules
from signal_router.core.runner import BackgroundTask
from signal_router.core.tickers import extract_tickers

LOGGER = logging.getLogger(__name__)


class MessageRouter:
    """Orchestrates extraction, rule matching and dispatch planning."""

    def __init__(self, lexicon: Lexicon, config_store: ConfigStorePort, planner: DispatchPlanner) -> None:
        self._lexicon = lexicon
        self._config_store = config_store
        self._planner = planner

    def load_rules(self) -> List[RoutingRule]:
        return build_rules(read_config_list(self._config_store, ROUTING_TABLE_KEY))

    async def handle(self, message: Message) -> List[BackgroundTask]:
        """Route one message and return its (not yet started) task batch."""

        tickers = extract_tickers(message.text, self._lexicon)
        if tickers or message.is_test:
            LOGGER.info(
                "Traffic received from %s in #%s: %s",
                message.author_name,
                message.channel_name,
                ", ".join(tickers) or "-",
                extra={
                    "meta": {
                        "user": message.author_name,
                        "channel": message.channel_name,
                        "tickers": tickers,
                        "is_test": message.is_test,
                    }
                },
            )

        rules = await asyncio.to_thread(self.load_rules)
        matches = match_rules(message, rules)
        if not matches:
            return []

        # Every matched rule dispatches; the list is for audit only.
        matched_names = [match.rule_name for match in matches]
        LOGGER.info(
            "Rules matched: %s",
            ", ".join(matched_names),
            extra={"meta": {"rules": matched_names, "type": "TEST" if message.is_test else "LIVE"}},
        )
        return self._planner.plan(matches, message, tickers)
