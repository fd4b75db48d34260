"""Application entry point for signal-router."""

from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from art import tprint

from signal_router.adapters.discord_notifier import DiscordWebhookNotifier
from signal_router.adapters.json_config_store import JsonFileConfigStore
from signal_router.adapters.notification_formatting import DEFAULT_ICON_URL
from signal_router.adapters.sentiment_classifier import DEFAULT_MODEL_URL, HuggingFaceSentimentClassifier
from signal_router.adapters.sqlite_storage import SQLiteRecordStore
from signal_router.adapters.telegram_bot_notifier import TelegramBotNotifier
from signal_router.core.dispatch import DispatchPlanner
from signal_router.core.lexicon import load_lexicon
from signal_router.core.models import ChannelKind
from signal_router.core.processor import MessageRouter
from signal_router.core.reports import ReportAggregator
from signal_router.core.runner import run_tasks
from signal_router.logs import configure_logging
from signal_router.settings import Settings, load_settings

NAME = "SIGNAL ROUTER"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


@dataclass(frozen=True)
class Components:
    """Everything a process needs, wired once at startup."""

    store: SQLiteRecordStore
    router: MessageRouter
    aggregator: ReportAggregator


def build_components(settings: Settings, store: Optional[SQLiteRecordStore] = None) -> Components:
    if store is None:
        store = SQLiteRecordStore(settings.db_path)
        store.init_db()
    config_store = JsonFileConfigStore(settings.config_store_path)
    lexicon = load_lexicon(settings.tickers_path, settings.ambiguous_path, settings.context_path)

    discord = DiscordWebhookNotifier(
        username=settings.discord_username,
        avatar_url=settings.discord_avatar_url or DEFAULT_ICON_URL,
        report_username=settings.report_username,
        report_avatar_url=settings.report_avatar_url or DEFAULT_ICON_URL,
        timeout=settings.http_timeout,
    )
    notifiers = {ChannelKind.DISCORD: discord}
    # Telegram routes are skipped (with a warning) when no bot token is set.
    if settings.tg_bot_token:
        notifiers[ChannelKind.TELEGRAM] = TelegramBotNotifier(settings.tg_bot_token, timeout=settings.http_timeout)

    classifier = HuggingFaceSentimentClassifier(
        url=settings.classifier_url or DEFAULT_MODEL_URL,
        api_token=settings.hf_api_token,
        timeout=settings.classifier_timeout,
    )
    planner = DispatchPlanner(store=store, classifier=classifier, notifiers=notifiers)
    LOGGER.info(
        "Lexicon loaded: %s tickers, %s ambiguous, %s context words",
        len(lexicon.tickers),
        len(lexicon.ambiguous),
        len(lexicon.context_boosters),
    )
    return Components(
        store=store,
        router=MessageRouter(lexicon=lexicon, config_store=config_store, planner=planner),
        aggregator=ReportAggregator(config_store=config_store, store=store, notifier=discord),
    )


def _startup(settings_path: Optional[str]) -> tuple[Settings, Components]:
    settings = load_settings(settings_path)
    store = SQLiteRecordStore(settings.db_path)
    store.init_db()
    configure_logging(settings, store)
    return settings, build_components(settings, store)


def _serve(settings_path: Optional[str]) -> None:
    import uvicorn

    from signal_router.api import create_app
    from signal_router.scheduler import run_scheduler

    _print_banner()
    settings, components = _startup(settings_path)

    @asynccontextmanager
    async def lifespan(_app):
        scheduler_task = None
        if settings.scheduler_enabled:
            scheduler_task = asyncio.create_task(run_scheduler(components.aggregator))
            LOGGER.info("Scheduler started")
        yield
        if scheduler_task is not None:
            scheduler_task.cancel()
            with suppress(asyncio.CancelledError):
                await scheduler_task

    app = create_app(components.router, lifespan=lifespan)
    LOGGER.info("Listening on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


def _tick(settings_path: Optional[str]) -> None:
    from signal_router.scheduler import run_tick

    _, components = _startup(settings_path)
    asyncio.run(run_tick(components.aggregator, datetime.now(timezone.utc)))


def _listen(settings_path: Optional[str]) -> None:
    from telethon import events

    from signal_router.adapters.telegram_mapper import build_message
    from signal_router.client import build_client

    _print_banner()
    _, components = _startup(settings_path)
    client = build_client()

    # Telegram traffic goes through the same router as HTTP traffic.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            message = await build_message(event.message)
            tasks = await components.router.handle(message)
        except Exception:
            LOGGER.exception("Error while routing Telegram message")
            return
        await run_tasks(tasks)

    client.start()
    LOGGER.info("Telegram client connected. Listening for incoming messages...")
    client.run_until_disconnected()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="signal-router")
    parser.add_argument("--config", help="Path to config.json (default: $SIGNAL_ROUTER_CONFIG or ./config.json)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Start the HTTP endpoint and the report scheduler")
    subparsers.add_parser("tick", help="Run one scheduler tick now (for external cron)")
    subparsers.add_parser("listen", help="Route incoming Telegram messages from a user session")

    args = parser.parse_args(argv)
    if args.command == "tick":
        _tick(args.config)
        return
    if args.command == "listen":
        _listen(args.config)
        return
    _serve(args.config)


if __name__ == "__main__":
    main()
