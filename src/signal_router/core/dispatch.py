"""Turn matched rules into independent downstream tasks (core domain).

Planning is synchronous and side-effect free: it only decides *which* tasks a
message needs. The returned BackgroundTask batch is executed later by
``run_tasks``, after the inbound caller has been acknowledged.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Mapping, Sequence, Tuple

from signal_router.core.models import (
    ChannelKind,
    Message,
    RecordKind,
    Sentiment,
    SentimentRecord,
    SentimentResult,
    TradeRecord,
)
from signal_router.core.ports import NotifierPort, RecordStorePort, SentimentClassifierPort
from signal_router.core.rules_engine import RuleMatch, RuleType
from signal_router.core.runner import BackgroundTask

LOGGER = logging.getLogger(__name__)

BULLISH_LABELS = frozenset({"POSITIVE", "BULLISH"})
BEARISH_LABELS = frozenset({"NEGATIVE", "BEARISH"})
# Feed traffic is noisy; only confident classifications are worth a log line.
FEED_LOG_CONFIDENCE = 0.9

RECORD_KIND_BY_RULE = {
    RuleType.ANALYSIS: RecordKind.ANALYSIS,
    RuleType.FEED: RecordKind.FEED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sentiment_from_scores(scores: Iterable[Tuple[str, float]]) -> SentimentResult:
    """Map classifier output to a SentimentResult; the highest score wins."""

    ranked = sorted(scores, key=lambda item: item[1], reverse=True)
    if not ranked:
        return SentimentResult.neutral()
    label, score = ranked[0]
    label = str(label).upper()
    if label in BULLISH_LABELS:
        sentiment = Sentiment.BULLISH
    elif label in BEARISH_LABELS:
        sentiment = Sentiment.BEARISH
    else:
        sentiment = Sentiment.NEUTRAL
    return SentimentResult(sentiment=sentiment, confidence=min(max(float(score), 0.0), 1.0))


async def classify_sentiment(classifier: SentimentClassifierPort, text: str) -> SentimentResult:
    """Classify a message, degrading to NEUTRAL/0.0 on any classifier failure."""

    try:
        scores = await classifier.classify(text)
        return sentiment_from_scores(scores)
    except Exception as exc:
        LOGGER.error("AI inference failed: %s", exc, extra={"meta": {"error": str(exc)}})
        return SentimentResult.neutral()


class DispatchPlanner:
    """Builds the task batch for one message and owns the task bodies."""

    def __init__(
        self,
        store: RecordStorePort,
        classifier: SentimentClassifierPort,
        notifiers: Mapping[ChannelKind, NotifierPort],
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._notifiers = dict(notifiers)
        self._clock = clock

    def plan(
        self,
        matches: Iterable[RuleMatch],
        message: Message,
        tickers: Sequence[str],
    ) -> List[BackgroundTask]:
        """Return every task the matched rules require, one rule at a time."""

        tickers = tuple(tickers)
        tasks: List[BackgroundTask] = []
        for match in matches:
            if match.category is RuleType.SIGNAL:
                if tickers:
                    tasks.append(self._trade_task(match, message, tickers))
                tasks.extend(self._notify_tasks(match, message))
            elif tickers:
                kind = RECORD_KIND_BY_RULE[match.category]
                tasks.append(self._analysis_task(match, kind, message, tickers))
        return tasks

    def _trade_task(self, match: RuleMatch, message: Message, tickers: Tuple[str, ...]) -> BackgroundTask:
        return BackgroundTask(
            name=f"{match.rule_name}:save-trades",
            run=lambda: self.save_trades(message, tickers),
        )

    def _analysis_task(
        self,
        match: RuleMatch,
        kind: RecordKind,
        message: Message,
        tickers: Tuple[str, ...],
    ) -> BackgroundTask:
        return BackgroundTask(
            name=f"{match.rule_name}:analyze-{kind.value}",
            run=lambda: self.analyze_and_save(kind, message, tickers),
        )

    def _notify_tasks(self, match: RuleMatch, message: Message) -> List[BackgroundTask]:
        routes = match.rule.routes
        targets = [(ChannelKind.TELEGRAM, target) for target in routes.telegram]
        targets += [(ChannelKind.DISCORD, target) for target in routes.discord]

        tasks: List[BackgroundTask] = []
        for kind, target in targets:
            notifier = self._notifiers.get(kind)
            if notifier is None:
                LOGGER.warning("No %s notifier configured; skipping route of %s", kind.value, match.rule_name)
                continue
            tasks.append(
                BackgroundTask(
                    name=f"{match.rule_name}:notify-{kind.value}",
                    run=self._bind_send(notifier, message, target),
                )
            )
        return tasks

    @staticmethod
    def _bind_send(notifier: NotifierPort, message: Message, target: str):
        # Bound per target; a lambda in the loop would capture the last one.
        return lambda: notifier.send_signal(message, target)

    async def save_trades(self, message: Message, tickers: Sequence[str]) -> None:
        """Persist one trade row per ticker as a single batch write."""

        created_at = self._clock()
        records = [
            TradeRecord(
                ticker=ticker,
                raw_message=message.text,
                source_channel=message.channel_name,
                source_message_id=message.message_id,
                created_at=created_at,
                image_url=message.first_image,
            )
            for ticker in tickers
        ]
        await asyncio.to_thread(self._store.insert_trades, records)
        LOGGER.info(
            "Saved trades: %s",
            ", ".join(tickers),
            extra={"meta": {"count": len(records), "tickers": list(tickers)}},
        )

    async def analyze_and_save(self, kind: RecordKind, message: Message, tickers: Sequence[str]) -> None:
        """Classify the message once and persist one sentiment row per ticker."""

        result = await classify_sentiment(self._classifier, message.text)
        created_at = self._clock()
        records = [
            SentimentRecord(
                ticker=ticker,
                sentiment=result.sentiment,
                confidence=result.confidence,
                raw_message=message.text,
                author=message.author_name,
                source_channel=message.channel_name,
                created_at=created_at,
                image_url=message.first_image,
            )
            for ticker in tickers
        ]
        await asyncio.to_thread(self._store.insert_sentiment_records, kind, records)
        if kind is RecordKind.ANALYSIS or result.confidence > FEED_LOG_CONFIDENCE:
            LOGGER.info(
                "Analyzed content into %s: %s",
                kind.value,
                result.sentiment.value,
                extra={
                    "meta": {
                        "table": kind.value,
                        "tickers": list(tickers),
                        "sentiment": result.sentiment.value,
                    }
                },
            )
