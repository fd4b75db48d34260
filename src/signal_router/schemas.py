"""Inbound payload schema for the HTTP ingestion endpoint.

Field names follow the Vencord plugin payload (short keys such as ``u`` and
``c_id``). Parsing turns the payload into the immutable core Message.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from signal_router.core.errors import MalformedInput
from signal_router.core.models import Attachment, Embed, EmbedField, Message


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AttachmentPayload(_Payload):
    url: Optional[str] = None
    filename: Optional[str] = None
    content_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class EmbedFieldPayload(_Payload):
    name: str = ""
    value: str = ""
    inline: bool = False


class EmbedFooterPayload(_Payload):
    text: Optional[str] = None
    icon_url: Optional[str] = None


class EmbedMediaPayload(_Payload):
    url: Optional[str] = None


class EmbedPayload(_Payload):
    title: Optional[str] = None
    description: Optional[str] = None
    # Some clients shorten description to desc.
    desc: Optional[str] = None
    url: Optional[str] = None
    footer: Optional[EmbedFooterPayload] = None
    timestamp: Optional[str] = None
    color: Optional[int] = None
    image: Optional[EmbedMediaPayload] = None
    thumbnail: Optional[EmbedMediaPayload] = None
    fields: List[EmbedFieldPayload] = []

    @field_validator("fields", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return value or []

    def to_embed(self) -> Embed:
        return Embed(
            title=self.title,
            description=self.description or self.desc,
            url=self.url,
            footer_text=self.footer.text if self.footer else None,
            footer_icon_url=self.footer.icon_url if self.footer else None,
            timestamp=self.timestamp,
            color=self.color,
            image_url=self.image.url if self.image else None,
            thumbnail_url=self.thumbnail.url if self.thumbnail else None,
            fields=tuple(EmbedField(name=f.name, value=f.value, inline=f.inline) for f in self.fields),
        )


class InboundPayload(_Payload):
    """One chat message as posted by the client plugin."""

    text: str = ""
    u: str = ""
    u_id: str = ""
    cn: str = ""
    c_id: str = ""
    s_id: str = ""
    sn: str = ""
    m_id: str = ""
    g_icon: Optional[str] = None
    imgs: List[str] = []
    attachments: List[AttachmentPayload] = []
    embeds: List[EmbedPayload] = []
    is_test: bool = False

    @field_validator("text", "u", "u_id", "cn", "c_id", "s_id", "sn", "m_id", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        # Discord snowflakes may arrive as numbers.
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("imgs", "attachments", "embeds", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return value or []

    @field_validator("is_test", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        return str(value).lower() == "true"

    def to_message(self) -> Message:
        return Message(
            text=self.text,
            author_id=self.u_id,
            author_name=self.u,
            channel_id=self.c_id,
            channel_name=self.cn,
            guild_id=self.s_id,
            guild_name=self.sn,
            message_id=self.m_id,
            guild_icon_url=self.g_icon,
            image_urls=tuple(url for url in self.imgs if url),
            attachments=tuple(
                Attachment(
                    url=item.url,
                    filename=item.filename,
                    content_type=item.content_type,
                    width=item.width,
                    height=item.height,
                )
                for item in self.attachments
                if item.url
            ),
            embeds=tuple(embed.to_embed() for embed in self.embeds),
            is_test=self.is_test,
        )


def parse_payload(data: Any) -> Message:
    """Validate a decoded JSON body into a Message or raise MalformedInput."""

    if not isinstance(data, dict):
        raise MalformedInput("payload must be a JSON object")
    try:
        return InboundPayload.model_validate(data).to_message()
    except ValidationError as exc:
        raise MalformedInput(f"invalid payload: {exc.error_count()} error(s)") from exc
