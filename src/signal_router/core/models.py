"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific payload or row types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

DISCORD_JUMP_URL = "https://discord.com/channels/{guild}/{channel}/{message}"


@dataclass(frozen=True)
class Attachment:
    """File attached to an inbound chat message."""

    url: str
    filename: Optional[str] = None
    content_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class EmbedField:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True)
class Embed:
    """Rich-content block carried by an inbound message (usually bot output)."""

    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    footer_text: Optional[str] = None
    footer_icon_url: Optional[str] = None
    timestamp: Optional[str] = None
    color: Optional[int] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    fields: Tuple[EmbedField, ...] = ()


@dataclass(frozen=True)
class Message:
    """Minimal inbound message used by the core processing pipeline."""

    text: str
    author_id: str = ""
    author_name: str = ""
    channel_id: str = ""
    channel_name: str = ""
    guild_id: str = ""
    guild_name: str = ""
    message_id: str = ""
    guild_icon_url: Optional[str] = None
    image_urls: Tuple[str, ...] = ()
    attachments: Tuple[Attachment, ...] = ()
    embeds: Tuple[Embed, ...] = ()
    is_test: bool = False
    permalink: Optional[str] = None

    @property
    def first_image(self) -> Optional[str]:
        return self.image_urls[0] if self.image_urls else None

    @property
    def jump_link(self) -> str:
        """Link back to the source message (Discord client link unless a permalink is known)."""

        if self.permalink:
            return self.permalink
        return DISCORD_JUMP_URL.format(
            guild=self.guild_id,
            channel=self.channel_id,
            message=self.message_id,
        )


class Sentiment(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class SentimentResult:
    """Sentiment assigned to a whole message."""

    sentiment: Sentiment
    confidence: float

    @classmethod
    def neutral(cls) -> "SentimentResult":
        return cls(sentiment=Sentiment.NEUTRAL, confidence=0.0)


class RecordKind(str, Enum):
    """Logical record shapes that share the sentiment row layout.

    The value is the table the shape is stored in.
    """

    ANALYSIS = "analysis"
    FEED = "feeds"


@dataclass(frozen=True)
class TradeRecord:
    """One ticker mentioned by a SIGNAL message."""

    ticker: str
    raw_message: str
    source_channel: str
    source_message_id: str
    created_at: datetime
    image_url: Optional[str] = None


@dataclass(frozen=True)
class SentimentRecord:
    """One ticker mentioned by an ANALYSIS or FEED message, with sentiment."""

    ticker: str
    sentiment: Sentiment
    confidence: float
    raw_message: str
    author: str
    source_channel: str
    created_at: datetime
    image_url: Optional[str] = None


@dataclass(frozen=True)
class LogEntry:
    """Persisted structured log line."""

    level: str
    message: str
    created_at: datetime
    meta: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TrendingRow:
    """Per-ticker aggregate of feed records inside a lookback window."""

    ticker: str
    count: int
    bullish: int = 0
    bearish: int = 0
    neutral: int = 0


class ChannelKind(str, Enum):
    """Notification channel families a route or report can target."""

    TELEGRAM = "telegram"
    DISCORD = "discord"


@dataclass(frozen=True)
class Report:
    """Structured report produced by a scheduled task, ready for any notifier."""

    title: str
    color: int
    created_at: datetime
    description: Optional[str] = None
    fields: Tuple[EmbedField, ...] = ()
    footer_text: Optional[str] = None
