"""Inbound mapping: Telegram objects to plain dataclasses.

This is the SINGLE place where python-telegram-bot types are read.  The
extractor, stores and conversation flow only ever see the dataclasses below,
which keeps them testable without building real ``telegram.Message`` objects.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from telegram import (
    CallbackQuery,
    Message,
    MessageOriginChannel,
    MessageOriginChat,
    MessageOriginHiddenUser,
    MessageOriginUser,
    User,
)


@dataclass
class TelegramUser:
    id: int
    is_bot: bool = False
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass
class MediaFile:
    """Any downloadable attachment (photo size, video, document, ...)."""
    file_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    duration: Optional[int] = None


@dataclass
class ForwardOrigin:
    kind: str                                  # 'user', 'hidden_user', 'chat', 'channel'
    date: Optional[datetime] = None
    user: Optional[TelegramUser] = None
    title: Optional[str] = None                # hidden sender name or chat/channel title
    author_signature: Optional[str] = None


@dataclass
class InboundMessage:
    message_id: int
    chat_id: int
    from_user: Optional[TelegramUser] = None
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: list[MediaFile] = field(default_factory=list)
    video: Optional[MediaFile] = None
    document: Optional[MediaFile] = None
    audio: Optional[MediaFile] = None
    voice: Optional[MediaFile] = None
    video_note: Optional[MediaFile] = None
    sticker: Optional[MediaFile] = None
    forward_origin: Optional[ForwardOrigin] = None
    reply_to: Optional["InboundMessage"] = None


@dataclass
class InboundCallback:
    id: str
    from_user: TelegramUser
    data: str
    chat_id: int
    message_id: Optional[int] = None


def _user(u: Optional[User]) -> Optional[TelegramUser]:
    if u is None:
        return None
    return TelegramUser(
        id=u.id,
        is_bot=bool(u.is_bot),
        username=u.username,
        first_name=u.first_name,
        last_name=u.last_name,
    )


def _media(obj, with_name: bool = True) -> Optional[MediaFile]:
    if obj is None:
        return None
    return MediaFile(
        file_id=obj.file_id,
        file_name=getattr(obj, "file_name", None) if with_name else None,
        mime_type=getattr(obj, "mime_type", None),
        file_size=getattr(obj, "file_size", None) or None,
        duration=_seconds(getattr(obj, "duration", None)),
    )


def _seconds(value) -> Optional[int]:
    """Durations arrive as int or timedelta depending on library settings."""
    if value is None:
        return None
    if hasattr(value, "total_seconds"):
        value = int(value.total_seconds())
    return int(value) or None


def _origin(msg: Message) -> Optional[ForwardOrigin]:
    origin = msg.forward_origin
    if origin is None:
        return None
    if isinstance(origin, MessageOriginUser):
        return ForwardOrigin(kind="user", date=origin.date, user=_user(origin.sender_user))
    if isinstance(origin, MessageOriginHiddenUser):
        return ForwardOrigin(kind="hidden_user", date=origin.date, title=origin.sender_user_name)
    if isinstance(origin, MessageOriginChat):
        return ForwardOrigin(
            kind="chat",
            date=origin.date,
            title=origin.sender_chat.title if origin.sender_chat else None,
            author_signature=origin.author_signature,
        )
    if isinstance(origin, MessageOriginChannel):
        return ForwardOrigin(
            kind="channel",
            date=origin.date,
            title=origin.chat.title if origin.chat else None,
            author_signature=origin.author_signature,
        )
    return ForwardOrigin(kind=str(origin.type), date=origin.date)


def from_telegram_message(msg: Message, include_reply: bool = True) -> InboundMessage:
    """Map a ``telegram.Message`` to an :class:`InboundMessage`."""
    reply_to = None
    if include_reply and msg.reply_to_message is not None:
        # One level is all the reply path needs
        reply_to = from_telegram_message(msg.reply_to_message, include_reply=False)

    return InboundMessage(
        message_id=msg.message_id,
        chat_id=msg.chat_id,
        from_user=_user(msg.from_user),
        text=msg.text,
        caption=msg.caption,
        photo=[_media(p, with_name=False) for p in (msg.photo or ())],
        video=_media(msg.video),
        document=_media(msg.document),
        audio=_media(msg.audio),
        voice=_media(msg.voice, with_name=False),
        video_note=_media(msg.video_note, with_name=False),
        sticker=_media(msg.sticker, with_name=False),
        forward_origin=_origin(msg),
        reply_to=reply_to,
    )


def from_telegram_callback(query: CallbackQuery) -> InboundCallback:
    """Map a ``telegram.CallbackQuery`` to an :class:`InboundCallback`.

    Inaccessible (old) messages still carry chat and message id; when no
    message is attached at all the private chat id equals the user id.
    """
    chat_id = query.from_user.id
    message_id = None
    if query.message is not None:
        chat_id = query.message.chat.id
        message_id = query.message.message_id
    return InboundCallback(
        id=query.id,
        from_user=_user(query.from_user),
        data=query.data or "",
        chat_id=chat_id,
        message_id=message_id,
    )
