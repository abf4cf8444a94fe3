"""Metadata extraction: message type, URLs, hashtags, mentions, file info.

Pure functions, no I/O.  ``classify`` runs once per message and everything
downstream dispatches on the resulting :class:`MessageType`.

Known false positives (kept as-is, covered by tests):
  - ``#`` inside a URL fragment is read as a hashtag
  - the domain label of an e-mail address is read as a mention
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .inbound import InboundMessage, MediaFile

PREVIEW_LIMIT = 150
PREVIEW_SUFFIX = "..."

_URL_RE = re.compile(r"https?://\S+")
_HASHTAG_RE = re.compile(r"#\w+")
_MENTION_RE = re.compile(r"@\w+")


class MessageType(str, Enum):
    TEXT = "text"
    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"
    AUDIO = "audio"
    VOICE = "voice"
    VIDEO_NOTE = "video_note"
    STICKER = "sticker"


# Precedence order: first attribute present wins, text/caption never override media
_MEDIA_PRECEDENCE = (
    (MessageType.PHOTO, "photo"),
    (MessageType.VIDEO, "video"),
    (MessageType.DOCUMENT, "document"),
    (MessageType.AUDIO, "audio"),
    (MessageType.VOICE, "voice"),
    (MessageType.VIDEO_NOTE, "video_note"),
    (MessageType.STICKER, "sticker"),
)


@dataclass
class FileDescriptor:
    file_id: Optional[str] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    duration: Optional[int] = None


@dataclass
class Provenance:
    forwarded_date: Optional[datetime] = None
    forwarded_from: Optional[str] = None


@dataclass
class MessageRecord:
    """Everything MessageStore.save persists for one inbound message."""
    telegram_message_id: int
    message_type: MessageType
    text_content: Optional[str] = None
    caption: Optional[str] = None
    file: FileDescriptor = field(default_factory=FileDescriptor)
    provenance: Optional[Provenance] = None
    urls: list[str] = field(default_factory=list)
    hashtags: list[str] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)


def classify(message: InboundMessage) -> MessageType:
    """Return the message type; media beats text even when a caption is set."""
    for message_type, attr in _MEDIA_PRECEDENCE:
        if getattr(message, attr):
            return message_type
    return MessageType.TEXT


def _scan(pattern: re.Pattern, text: Optional[str], caption: Optional[str]) -> list[str]:
    found = []
    if text:
        found.extend(pattern.findall(text))
    if caption:
        found.extend(pattern.findall(caption))
    return found


def extract_urls(text: Optional[str], caption: Optional[str]) -> list[str]:
    """URLs in appearance order, text before caption."""
    return _scan(_URL_RE, text, caption)


def extract_hashtags(text: Optional[str], caption: Optional[str]) -> list[str]:
    """Hashtags without the leading ``#``."""
    return [tag[1:] for tag in _scan(_HASHTAG_RE, text, caption)]


def extract_mentions(text: Optional[str], caption: Optional[str]) -> list[str]:
    """Mentions without the leading ``@``."""
    return [mention[1:] for mention in _scan(_MENTION_RE, text, caption)]


def _copy(media: Optional[MediaFile], with_duration: bool) -> FileDescriptor:
    if media is None:
        return FileDescriptor()
    return FileDescriptor(
        file_id=media.file_id,
        file_name=media.file_name or None,
        mime_type=media.mime_type or None,
        file_size=media.file_size or None,
        duration=(media.duration or None) if with_duration else None,
    )


def file_metadata(message: InboundMessage, message_type: MessageType) -> FileDescriptor:
    """File descriptor for the given (already classified) type."""
    if message_type is MessageType.PHOTO:
        if not message.photo:
            return FileDescriptor()
        smallest = message.photo[0]
        return FileDescriptor(file_id=smallest.file_id, file_size=smallest.file_size or None)
    if message_type is MessageType.VIDEO:
        return _copy(message.video, with_duration=True)
    if message_type is MessageType.DOCUMENT:
        return _copy(message.document, with_duration=False)
    if message_type is MessageType.AUDIO:
        return _copy(message.audio, with_duration=True)
    if message_type is MessageType.VOICE:
        return _copy(message.voice, with_duration=True)
    # text, video notes and stickers carry no file metadata
    return FileDescriptor()


def truncate_preview(text: Optional[str], limit: int = PREVIEW_LIMIT) -> Optional[str]:
    if not text:
        return None
    if len(text) <= limit:
        return text
    return text[:limit] + PREVIEW_SUFFIX


def format_provenance(message: InboundMessage) -> Optional[Provenance]:
    """Forwarding origin as a display string plus the original date."""
    origin = message.forward_origin
    if origin is None:
        return None

    label = None
    if origin.kind == "user" and origin.user is not None:
        u = origin.user
        label = u.first_name or ""
        if u.last_name:
            label += " " + u.last_name
        if u.username:
            label += f" (@{u.username})"
        label = label.strip() or None
    elif origin.title:
        label = origin.title
        if origin.author_signature:
            label += f" ({origin.author_signature})"

    return Provenance(forwarded_date=origin.date, forwarded_from=label)


def build_record(message: InboundMessage) -> MessageRecord:
    """Classify once and derive everything stored for the message.

    URLs, hashtags and mentions come from the FULL text and caption; only the
    stored previews are truncated.
    """
    message_type = classify(message)
    return MessageRecord(
        telegram_message_id=message.message_id,
        message_type=message_type,
        text_content=truncate_preview(message.text),
        caption=truncate_preview(message.caption),
        file=file_metadata(message, message_type),
        provenance=format_provenance(message),
        urls=extract_urls(message.text, message.caption),
        hashtags=extract_hashtags(message.text, message.caption),
        mentions=extract_mentions(message.text, message.caption),
    )
