"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline, so a Telegram
chat can feed the same router as the HTTP endpoint.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon.tl.custom import Message as TelethonMessage
from telethon.tl.types import PeerChannel, PeerChat

from signal_router.core.models import Message


def display_name(entity: Any) -> str:
    """Return a readable name for a Telethon user, chat or channel entity."""

    if entity is None:
        return ""
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    first = getattr(entity, "first_name", None)
    last = getattr(entity, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    username = getattr(entity, "username", None)
    if username:
        return f"@{username}"
    return str(getattr(entity, "id", "") or "")


def build_permalink(message: TelethonMessage) -> Optional[str]:
    chat = getattr(message, "chat", None)
    username = getattr(chat, "username", None)
    # Prefer public usernames for permalinks when available.
    if isinstance(username, str) and username:
        return f"https://t.me/{username}/{message.id}"
    peer_id = message.peer_id
    if isinstance(peer_id, PeerChannel):
        return f"https://t.me/c/{peer_id.channel_id}/{message.id}"
    if isinstance(peer_id, PeerChat):
        return f"https://t.me/c/{peer_id.chat_id}/{message.id}"
    # PeerUser has no chat/channel id; no permalink is possible.
    return None


async def build_message(message: TelethonMessage) -> Message:
    """Build a core Message from a Telethon Message."""

    sender = await message.get_sender()
    chat = await message.get_chat()
    return Message(
        text=message.raw_text or "",
        author_id=str(message.sender_id or ""),
        author_name=display_name(sender),
        channel_id=str(message.chat_id or ""),
        channel_name=display_name(chat),
        message_id=str(message.id),
        permalink=build_permalink(message),
    )
