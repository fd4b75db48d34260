"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
import re
from datetime import datetime
from typing import Any, Optional

from signal_router.core.models import Embed, Message, Report

DEFAULT_COLOR = 0x5865F2
BULLISH_COLOR = 0x57F287
BEARISH_COLOR = 0xED4245
BULLISH_PATTERN = re.compile(r"call|bull|buy|long|up")
BEARISH_PATTERN = re.compile(r"put|bear|sell|short|down|gap")

DEFAULT_ICON_URL = "https://i.imgur.com/4M34hi2.png"
IMAGE_FILENAME = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)
IMAGE_URL = re.compile(r"\.(jpg|jpeg|png|gif|webp)", re.IGNORECASE)

# Discord API limits.
EMBED_DESCRIPTION_LIMIT = 4096
FIELD_NAME_LIMIT = 256
FIELD_VALUE_LIMIT = 1024
MAX_EMBEDS = 10

# Telegram API limits, minus headroom for the header and link lines.
TELEGRAM_CAPTION_BODY = 700
TELEGRAM_TEXT_BODY = 3500

DIVIDER = "──────────────"


def signal_color(text: str) -> int:
    """Pick the embed color from keywords; bearish words win over bullish ones."""

    content = (text or "").lower()
    color = DEFAULT_COLOR
    if BULLISH_PATTERN.search(content):
        color = BULLISH_COLOR
    if BEARISH_PATTERN.search(content):
        color = BEARISH_COLOR
    return color


def find_image_url(message: Message) -> Optional[str]:
    """Return the first image URL, falling back to image-like attachments."""

    if message.first_image:
        return message.first_image
    for attachment in message.attachments:
        if (
            attachment.width
            or attachment.height
            or (attachment.content_type or "").startswith("image/")
            or IMAGE_FILENAME.search(attachment.filename or "")
            or IMAGE_URL.search(attachment.url or "")
        ):
            return attachment.url
    return None


def _copy_embed(embed: Embed, color: int) -> dict[str, Any]:
    """Rebuild an inbound rich embed, keeping only the fields Discord accepts."""

    copied: dict[str, Any] = {}
    if embed.title:
        copied["title"] = embed.title
    if embed.description:
        copied["description"] = embed.description[:EMBED_DESCRIPTION_LIMIT]
    if embed.url:
        copied["url"] = embed.url
    if embed.footer_text:
        copied["footer"] = {"text": embed.footer_text, "icon_url": embed.footer_icon_url}
    if embed.timestamp:
        copied["timestamp"] = embed.timestamp
    if embed.image_url:
        copied["image"] = {"url": embed.image_url}
    if embed.thumbnail_url:
        copied["thumbnail"] = {"url": embed.thumbnail_url}
    if embed.fields:
        copied["fields"] = [
            {
                "name": field.name[:FIELD_NAME_LIMIT],
                "value": field.value[:FIELD_VALUE_LIMIT],
                "inline": field.inline,
            }
            for field in embed.fields
        ]
    if not copied:
        return copied
    # A keyword color beats the bot's own embed color.
    copied["color"] = color if color != DEFAULT_COLOR else (embed.color or color)
    return copied


def build_signal_embeds(message: Message, now: datetime) -> list[dict[str, Any]]:
    """Return the main signal embed followed by the message's own rich embeds."""

    color = signal_color(message.text)
    main: dict[str, Any] = {
        "author": {
            "name": f"{message.guild_name or 'Unknown'} • #{message.channel_name or 'Unknown'}",
            "icon_url": message.guild_icon_url or DEFAULT_ICON_URL,
        },
        "title": f"📢 New Signal from {message.author_name or 'User'}",
        "url": message.jump_link,
        "description": (message.text or "")[:EMBED_DESCRIPTION_LIMIT],
        "color": color,
        "footer": {"text": now.strftime("%H:%M:%S")},
        "timestamp": now.isoformat(),
    }
    image_url = find_image_url(message)
    if image_url:
        main["image"] = {"url": image_url}

    extras = [copied for copied in (_copy_embed(embed, color) for embed in message.embeds) if copied]
    return [main, *extras][:MAX_EMBEDS]


def build_report_embed(report: Report) -> dict[str, Any]:
    embed: dict[str, Any] = {
        "title": report.title,
        "color": report.color,
        "timestamp": report.created_at.isoformat(),
    }
    if report.description:
        embed["description"] = report.description[:EMBED_DESCRIPTION_LIMIT]
    if report.fields:
        embed["fields"] = [
            {
                "name": field.name[:FIELD_NAME_LIMIT],
                "value": field.value[:FIELD_VALUE_LIMIT],
                "inline": field.inline,
            }
            for field in report.fields
        ]
    if report.footer_text:
        embed["footer"] = {"text": report.footer_text}
    return embed


def format_telegram_signal(message: Message, caption: bool = False) -> str:
    """Create the HTML body used by the Bot API adapter."""

    limit = TELEGRAM_CAPTION_BODY if caption else TELEGRAM_TEXT_BODY
    body = message.text or ""
    if len(body) > limit:
        body = body[:limit] + "…"

    guild = html.escape(message.guild_name or "Unknown")
    channel = html.escape(message.channel_name or "Unknown")
    author = html.escape(message.author_name or "User")
    link = html.escape(message.jump_link)

    parts = [
        "🚨 <b>SIGNAL</b>",
        f"📂 {guild} | {channel}",
        f"👤 <b>{author}</b>",
        DIVIDER,
        html.escape(body),
        "",
        f"<a href=\"{link}\">🔗 Jump to Message</a>",
    ]
    return "\n".join(parts)
