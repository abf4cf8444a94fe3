"""Outbound messaging: the only capabilities the core needs from Telegram.

The flow talks to :class:`Messenger`; :class:`TelegramMessenger` is the
python-telegram-bot implementation.  Markup is described with the small
dataclasses below and converted at the edge.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Union

from telegram import (
    Bot,
    ForceReply,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
)
from telegram.error import TelegramError

logger = logging.getLogger("organizer.messenger")


@dataclass
class Button:
    label: str
    callback_data: Optional[str] = None
    url: Optional[str] = None


@dataclass
class InlineKeyboard:
    rows: list[list[Button]] = field(default_factory=list)


@dataclass
class ForceReplyMarkup:
    selective: bool = True


ReplyMarkup = Union[InlineKeyboard, ForceReplyMarkup]


class Messenger(ABC):
    """Outbound capabilities used by the conversation flow."""

    @abstractmethod
    async def send(
        self,
        chat_id: int,
        text: str,
        reply_to: Optional[int] = None,
        markup: Optional[ReplyMarkup] = None,
    ) -> Optional[int]:
        """Send a message, return the sent message id."""
        ...

    @abstractmethod
    async def edit_text(self, chat_id: int, message_id: int, text: str) -> bool:
        """Replace the text of a sent message (drops its keyboard)."""
        ...

    @abstractmethod
    async def answer_callback(self, callback_id: str) -> bool:
        """Acknowledge a button press so the client stops its spinner."""
        ...


def to_telegram_markup(markup: Optional[ReplyMarkup]):
    if markup is None:
        return None
    if isinstance(markup, ForceReplyMarkup):
        return ForceReply(selective=markup.selective)
    rows = []
    for row in markup.rows:
        buttons = []
        for b in row:
            if b.url:
                buttons.append(InlineKeyboardButton(b.label, url=b.url))
            else:
                buttons.append(InlineKeyboardButton(b.label, callback_data=b.callback_data))
        rows.append(buttons)
    return InlineKeyboardMarkup(rows)


class TelegramMessenger(Messenger):
    """Messenger backed by a python-telegram-bot ``Bot``.

    Telegram errors are logged and reported as a falsy result; a failed send
    never aborts the conversation turn.
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, chat_id, text, reply_to=None, markup=None):
        kwargs = {}
        if reply_to is not None:
            kwargs["reply_to_message_id"] = reply_to
        try:
            sent = await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                reply_markup=to_telegram_markup(markup),
                **kwargs,
            )
            return sent.message_id
        except TelegramError as e:
            logger.error(f"Error sending message to chat {chat_id}: {type(e).__name__}: {e}")
            return None

    async def edit_text(self, chat_id, message_id, text):
        try:
            await self.bot.edit_message_text(chat_id=chat_id, message_id=message_id, text=text)
            return True
        except TelegramError as e:
            logger.error(f"Error editing message {message_id} in chat {chat_id}: {type(e).__name__}: {e}")
            return False

    async def answer_callback(self, callback_id):
        try:
            await self.bot.answer_callback_query(callback_id)
            return True
        except TelegramError as e:
            logger.error(f"Error answering callback query {callback_id}: {type(e).__name__}: {e}")
            return False
