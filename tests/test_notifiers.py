from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from signal_router.adapters.discord_notifier import DiscordWebhookNotifier
from signal_router.adapters.sentiment_classifier import HuggingFaceSentimentClassifier
from signal_router.adapters.telegram_bot_notifier import TelegramBotNotifier
from signal_router.core.errors import ClassifierFailure, NotificationFailure
from signal_router.core.models import Message, Report

NOW = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)
MESSAGE = Message(
    text="BUY $AAPL",
    author_name="alice",
    channel_id="200",
    channel_name="alpha",
    guild_id="100",
    guild_name="Desk",
    message_id="300",
)


class Recorder:
    def __init__(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else {"ok": True}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payloads(self) -> list:
        return [json.loads(request.content) for request in self.requests]


def _failing_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


def test_discord_signal_payload() -> None:
    recorder = Recorder(status_code=204, body={})
    notifier = DiscordWebhookNotifier(
        username="Router",
        avatar_url="https://avatar",
        transport=httpx.MockTransport(recorder),
        clock=lambda: NOW,
    )

    asyncio.run(notifier.send_signal(MESSAGE, "https://discord.test/api/webhooks/1/abc"))

    (request,) = recorder.requests
    assert str(request.url) == "https://discord.test/api/webhooks/1/abc"
    payload = recorder.payloads[0]
    assert payload["username"] == "Router"
    assert payload["avatar_url"] == "https://avatar"
    assert payload["embeds"][0]["title"] == "📢 New Signal from alice"


def test_discord_report_uses_reporter_identity() -> None:
    recorder = Recorder()
    notifier = DiscordWebhookNotifier(report_username="Reporter", transport=httpx.MockTransport(recorder))
    report = Report(title="🔥 Market Heatmap (Last 60m)", color=0xFF9900, created_at=NOW, description="x")

    asyncio.run(notifier.send_report(report, "https://discord.test/hook"))

    payload = recorder.payloads[0]
    assert payload["username"] == "Reporter"
    assert [embed["title"] for embed in payload["embeds"]] == ["🔥 Market Heatmap (Last 60m)"]


def test_discord_error_status_raises() -> None:
    notifier = DiscordWebhookNotifier(transport=httpx.MockTransport(Recorder(status_code=404)))
    with pytest.raises(NotificationFailure):
        asyncio.run(notifier.send_signal(MESSAGE, "https://discord.test/hook"))


def test_discord_transport_error_hides_the_webhook_url() -> None:
    notifier = DiscordWebhookNotifier(transport=_failing_transport())
    with pytest.raises(NotificationFailure) as excinfo:
        asyncio.run(notifier.send_signal(MESSAGE, "https://discord.test/api/webhooks/1/secret-token"))
    assert "secret-token" not in str(excinfo.value)


def test_telegram_sends_text_without_image() -> None:
    recorder = Recorder()
    notifier = TelegramBotNotifier("123:token", transport=httpx.MockTransport(recorder))

    asyncio.run(notifier.send_signal(MESSAGE, "-1001"))

    (request,) = recorder.requests
    assert request.url.path == "/bot123:token/sendMessage"
    payload = recorder.payloads[0]
    assert payload["chat_id"] == "-1001"
    assert payload["parse_mode"] == "HTML"
    assert "BUY $AAPL" in payload["text"]


def test_telegram_sends_photo_with_caption() -> None:
    notifier = TelegramBotNotifier("123:token")
    method, payload = notifier.build_request(
        Message(text="chart", image_urls=("https://img/1.png",)),
        "-1001",
    )
    assert method == "sendPhoto"
    assert payload["photo"] == "https://img/1.png"
    assert "chart" in payload["caption"]
    assert "text" not in payload


def test_telegram_error_status_raises() -> None:
    notifier = TelegramBotNotifier("123:token", transport=httpx.MockTransport(Recorder(status_code=400)))
    with pytest.raises(NotificationFailure):
        asyncio.run(notifier.send_signal(MESSAGE, "-1001"))


def test_classifier_parses_nested_scores() -> None:
    recorder = Recorder(body=[[{"label": "POSITIVE", "score": 0.98}, {"label": "NEGATIVE", "score": 0.02}]])
    classifier = HuggingFaceSentimentClassifier(
        url="https://hf.test/model",
        api_token="hf_secret",
        transport=httpx.MockTransport(recorder),
    )

    scores = asyncio.run(classifier.classify("AAPL to the moon"))

    assert scores == [("POSITIVE", 0.98), ("NEGATIVE", 0.02)]
    (request,) = recorder.requests
    assert request.headers["Authorization"] == "Bearer hf_secret"
    assert recorder.payloads == [{"inputs": "AAPL to the moon"}]


def test_classifier_accepts_flat_scores() -> None:
    recorder = Recorder(body=[{"label": "NEGATIVE", "score": 0.7}])
    classifier = HuggingFaceSentimentClassifier(url="https://hf.test/model", transport=httpx.MockTransport(recorder))
    assert asyncio.run(classifier.classify("meh")) == [("NEGATIVE", 0.7)]
    assert "Authorization" not in recorder.requests[0].headers


@pytest.mark.parametrize(
    "status_code, body",
    [
        (503, {"error": "Model is currently loading"}),
        (200, {"error": "Model is currently loading"}),
        (200, {"unexpected": True}),
        (200, [[{"label": "POSITIVE"}]]),
    ],
)
def test_classifier_failures(status_code, body) -> None:
    classifier = HuggingFaceSentimentClassifier(
        url="https://hf.test/model",
        transport=httpx.MockTransport(Recorder(status_code=status_code, body=body)),
    )
    with pytest.raises(ClassifierFailure):
        asyncio.run(classifier.classify("text"))


def test_classifier_transport_error() -> None:
    classifier = HuggingFaceSentimentClassifier(url="https://hf.test/model", transport=_failing_transport())
    with pytest.raises(ClassifierFailure):
        asyncio.run(classifier.classify("text"))
