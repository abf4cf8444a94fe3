"""Conversation state carried inside Telegram itself.

There is no session store: the id of the message being tagged travels in the
text of the bot's own prompt (``[MSG_ID:<id>]``) and in inline-button
callback data.  Swapping :class:`TextMarkerCodec` for a server-held session
only requires another :class:`ConversationCodec` implementation.

Formats:
  prompt marker      [MSG_ID:<decimal>]   anywhere in the text, found by search
  existing tag       tag:<tagId>:<msgId>  exactly 3 fields
  create new tag     new_tag:<msgId>      exactly 2 fields
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from ..errors import ParseError

MARKER_PREFIX = "[MSG_ID:"
MARKER_SUFFIX = "]"

TAG_PREFIX = "tag"
NEW_TAG_PREFIX = "new_tag"

# Prompts sent by older bot versions had no marker; still recognise them
KNOWN_PROMPT_PHRASES = (
    "Choose a tag by typing",
    "You don't have any tags yet",
    "You have many tags",
    "Please reply with the name for your new tag",
)


@dataclass(frozen=True)
class TagChoice:
    tag_id: int
    message_ref: int


@dataclass(frozen=True)
class NewTag:
    message_ref: int


CallbackAction = Union[TagChoice, NewTag]


def _decimal(value: str, what: str) -> int:
    # int() alone would accept whitespace, underscores and non-ASCII digits
    if not value.isascii() or not value.isdigit():
        raise ParseError(f"{what} is not a decimal integer: {value!r}")
    return int(value)


class ConversationCodec(ABC):
    """Encode/decode the message reference carried between turns."""

    @abstractmethod
    def encode_prompt(self, text: str, message_ref: int) -> str:
        ...

    @abstractmethod
    def decode_prompt(self, text: str) -> int:
        ...

    @abstractmethod
    def is_tag_prompt(self, text: str) -> bool:
        ...

    @abstractmethod
    def encode_tag_choice(self, tag_id: int, message_ref: int) -> str:
        ...

    @abstractmethod
    def encode_new_tag(self, message_ref: int) -> str:
        ...

    @abstractmethod
    def decode_callback(self, data: str) -> CallbackAction:
        ...


class TextMarkerCodec(ConversationCodec):
    """Marker-in-text and colon-delimited callback data."""

    def encode_prompt(self, text: str, message_ref: int) -> str:
        return f"{text}\n\n{MARKER_PREFIX}{message_ref}{MARKER_SUFFIX}"

    def decode_prompt(self, text: str) -> int:
        """Message reference from a prompt text.

        Raises:
            ParseError: marker missing, unterminated or not numeric.
        """
        if not text:
            raise ParseError("empty prompt text")
        start = text.rfind(MARKER_PREFIX)
        if start == -1:
            raise ParseError("conversation marker not found")
        value_start = start + len(MARKER_PREFIX)
        end = text.find(MARKER_SUFFIX, value_start)
        if end == -1:
            raise ParseError("conversation marker is not terminated")
        return _decimal(text[value_start:end], "message id")

    def is_tag_prompt(self, text: str) -> bool:
        if not text:
            return False
        if MARKER_PREFIX in text:
            return True
        return any(phrase in text for phrase in KNOWN_PROMPT_PHRASES)

    def encode_tag_choice(self, tag_id: int, message_ref: int) -> str:
        return f"{TAG_PREFIX}:{tag_id}:{message_ref}"

    def encode_new_tag(self, message_ref: int) -> str:
        return f"{NEW_TAG_PREFIX}:{message_ref}"

    def decode_callback(self, data: str) -> CallbackAction:
        """Parse callback data into a :class:`TagChoice` or :class:`NewTag`.

        Raises:
            ParseError: unknown prefix, wrong field count or non-numeric ids.
        """
        parts = (data or "").split(":")
        kind = parts[0]
        if kind == TAG_PREFIX:
            if len(parts) != 3:
                raise ParseError(f"tag callback needs 3 fields, got {len(parts)}: {data!r}")
            return TagChoice(
                tag_id=_decimal(parts[1], "tag id"),
                message_ref=_decimal(parts[2], "message id"),
            )
        if kind == NEW_TAG_PREFIX:
            if len(parts) != 2:
                raise ParseError(f"new_tag callback needs 2 fields, got {len(parts)}: {data!r}")
            return NewTag(message_ref=_decimal(parts[1], "message id"))
        raise ParseError(f"unknown callback data: {data!r}")
