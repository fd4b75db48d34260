from __future__ import annotations

import asyncio

from signal_router.core.dispatch import DispatchPlanner
from signal_router.core.errors import ConfigUnavailable
from signal_router.core.lexicon import Lexicon
from signal_router.core.models import ChannelKind, Message
from signal_router.core.processor import MessageRouter

LEXICON = Lexicon.from_words(tickers=["AAPL", "TSLA"], ambiguous=[])


class FakeConfigStore:
    def __init__(self, tables=None, error: Exception | None = None) -> None:
        self.tables = tables or {}
        self.error = error
        self.reads = 0

    def get_list(self, key: str) -> list:
        self.reads += 1
        if self.error is not None:
            raise self.error
        return self.tables.get(key, [])


class FakeStore:
    def insert_trades(self, records) -> None:
        pass

    def insert_sentiment_records(self, kind, records) -> None:
        pass


class FakeClassifier:
    async def classify(self, text: str):
        return [("POSITIVE", 0.9)]


class FakeNotifier:
    async def send_signal(self, message: Message, target: str) -> None:
        pass


def _router(config_store: FakeConfigStore) -> MessageRouter:
    planner = DispatchPlanner(
        store=FakeStore(),
        classifier=FakeClassifier(),
        notifiers={ChannelKind.DISCORD: FakeNotifier(), ChannelKind.TELEGRAM: FakeNotifier()},
    )
    return MessageRouter(lexicon=LEXICON, config_store=config_store, planner=planner)


def test_unavailable_config_yields_no_tasks() -> None:
    router = _router(FakeConfigStore(error=ConfigUnavailable("kv down")))
    assert asyncio.run(router.handle(Message(text="$AAPL"))) == []


def test_empty_routing_table_yields_no_tasks() -> None:
    router = _router(FakeConfigStore())
    assert asyncio.run(router.handle(Message(text="$AAPL"))) == []


def test_empty_text_on_signal_rule_only_notifies() -> None:
    config = FakeConfigStore(
        {"ROUTING_TABLE": [{"name": "signals", "type": "SIGNAL", "enabled": True, "routes": {"discord": ["hook"]}}]}
    )
    tasks = asyncio.run(_router(config).handle(Message(text="", channel_id="c1")))
    assert [task.name for task in tasks] == ["signals:notify-discord"]


def test_rules_are_read_fresh_for_each_message() -> None:
    config = FakeConfigStore({"ROUTING_TABLE": [{"name": "feed", "type": "FEED", "enabled": True}]})
    router = _router(config)

    first = asyncio.run(router.handle(Message(text="TSLA ripping")))
    config.tables["ROUTING_TABLE"] = []
    second = asyncio.run(router.handle(Message(text="TSLA ripping")))

    assert [task.name for task in first] == ["feed:analyze-feeds"]
    assert second == []
    assert config.reads == 2


def test_all_matching_rules_contribute_tasks() -> None:
    config = FakeConfigStore(
        {
            "ROUTING_TABLE": [
                {
                    "name": "signals",
                    "type": "SIGNAL",
                    "enabled": True,
                    "match": {"channel_id": ["c1"]},
                    "routes": {"telegram": ["42"]},
                },
                {"name": "desk", "type": "ANALYSIS", "enabled": True, "match": {"user_id": ["u1"]}},
                {"name": "elsewhere", "type": "FEED", "enabled": True, "match": {"channel_id": ["c2"]}},
            ]
        }
    )
    message = Message(text="$AAPL looks ready", channel_id="c1", author_id="u1")

    tasks = asyncio.run(_router(config).handle(message))

    assert [task.name for task in tasks] == [
        "signals:save-trades",
        "signals:notify-telegram",
        "desk:analyze-analysis",
    ]
