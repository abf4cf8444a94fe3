"""Tag selection conversation.

States:
  AWAITING_TAG_CHOICE  picker sent after ingestion (or "new tag" prompt sent)
  RESOLVED             tag linked, confirmation sent
  FAILED               parse/lookup/store error, one error message sent

Nothing is persisted between turns.  Whatever the user replies to or presses
carries the message reference (see ``codec``), and each turn rebuilds its
context from that alone, so any process can handle any turn.

Numbered replies are resolved against the tag list as it is *now*.  If the
user's tags changed between the prompt and the reply, index n can name a
different tag than the one shown.  That window is accepted: closing it would
need state held across turns.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..db.messages import MessageStore
from ..db.tags import TagStore
from ..db.users import UserStore
from ..errors import (
    GENERIC_NOT_FOUND,
    OrganizerError,
    StoreError,
    ValidationError,
    user_message,
)
from ..extract import build_record
from ..inbound import InboundCallback, InboundMessage
from ..messenger import Messenger
from .codec import ConversationCodec, NewTag, TagChoice, TextMarkerCodec
from .ui import UIMode, render_new_tag_prompt, render_picker

logger = logging.getLogger("organizer.flow")

# A numeric reply is always an index, even to a button picker, so a purely
# numeric tag name such as "2024" cannot be created by reply
_INDEX_RE = re.compile(r"[+-]?[0-9]+")

SAVE_FAILED = "Sorry, I couldn't save your message. Please try again."
TAGS_UNAVAILABLE = "Could not load your tags."
EMPTY_TAG_NAME = "Please enter a tag name."
INVALID_TAG_NUMBER = "Invalid tag number. Please try again."
TAG_FAILED = "Could not create or find the tag."
LINK_FAILED = "Could not tag the message."
WAITING_FOR_NAME = "Please reply with your new tag name..."


class State(str, Enum):
    AWAITING_TAG_CHOICE = "awaiting_tag_choice"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class Outcome:
    state: State
    mode: Optional[UIMode] = None
    tag_id: Optional[int] = None
    tag_name: Optional[str] = None
    message_id: Optional[int] = None
    error: Optional[Exception] = None


def confirmation_text(tag_name: str) -> str:
    return f"✅ Message tagged with '{tag_name}'"


def picker_done_text(tag_name: str) -> str:
    return f"✅ Tagged with '{tag_name}'"


class TagSelectionFlow:
    """Ingest messages, show the tag picker and resolve the user's choice."""

    def __init__(
        self,
        users: UserStore,
        messages: MessageStore,
        tags: TagStore,
        messenger: Messenger,
        codec: Optional[ConversationCodec] = None,
    ):
        self.users = users
        self.messages = messages
        self.tags = tags
        self.messenger = messenger
        self.codec = codec or TextMarkerCodec()

    # ── Entry points ─────────────────────────────────────────

    async def handle_message(self, msg: InboundMessage) -> Optional[Outcome]:
        """Route a message: tag reply or new content.

        Commands are routed by the channel and never reach here.  Returns
        None for messages without a sender.
        """
        if msg.from_user is None:
            return None

        logger.info(f"[{msg.from_user.username or msg.from_user.id}] message {msg.message_id}")

        try:
            user_id = await self.users.upsert(msg.from_user)
        except StoreError as e:
            logger.error(f"Error saving user {msg.from_user.id}: {e}")
            return await self._fail(msg.chat_id, e, SAVE_FAILED, reply_to=msg.message_id)

        if self.is_tag_reply(msg):
            return await self.resolve_reply(msg, user_id)
        return await self.ingest(msg, user_id)

    async def handle_callback(self, cb: InboundCallback) -> Outcome:
        """Resolve an inline-button press.

        The callback is acknowledged before anything else so the client stops
        its loading spinner whatever happens next.
        """
        await self.messenger.answer_callback(cb.id)
        logger.info(f"Callback from {cb.from_user.id}: {cb.data}")

        try:
            user_id = await self.users.upsert(cb.from_user)
        except StoreError as e:
            logger.error(f"Error saving user {cb.from_user.id}: {e}")
            return await self._fail(cb.chat_id, e, LINK_FAILED)

        try:
            action = self.codec.decode_callback(cb.data)
        except OrganizerError as e:
            logger.warning(f"Bad callback data from {cb.from_user.id}: {e}")
            return await self._fail(cb.chat_id, e)

        if isinstance(action, NewTag):
            return await self._ask_new_tag(cb, action)
        return await self._apply_tag_choice(cb, user_id, action)

    # ── Ingestion ────────────────────────────────────────────

    def is_tag_reply(self, msg: InboundMessage) -> bool:
        """True when the message replies to one of the bot's tag prompts."""
        reply = msg.reply_to
        if reply is None or reply.from_user is None or not reply.from_user.is_bot:
            return False
        return self.codec.is_tag_prompt(reply.text or "")

    async def ingest(self, msg: InboundMessage, user_id: int) -> Outcome:
        record = build_record(msg)
        try:
            await self.messages.save(user_id, record)
        except StoreError as e:
            logger.error(f"Error saving message {msg.message_id}: {e}")
            return await self._fail(msg.chat_id, e, SAVE_FAILED, reply_to=msg.message_id)

        logger.debug(
            f"Saved {record.message_type.value} message {msg.message_id}: "
            f"{len(record.urls)} urls, {len(record.hashtags)} hashtags, {len(record.mentions)} mentions"
        )
        return await self.prompt(msg.chat_id, user_id, msg.message_id)

    async def prompt(self, chat_id: int, user_id: int, message_ref: int) -> Outcome:
        """Send the tag picker for a stored message."""
        try:
            tags = await self.tags.list_for_user(user_id)
        except StoreError as e:
            logger.error(f"Error getting tags for user {user_id}: {e}")
            return await self._fail(chat_id, e, TAGS_UNAVAILABLE)

        picker = render_picker(tags, message_ref, self.codec)
        await self.messenger.send(chat_id, picker.text, reply_to=message_ref, markup=picker.markup)
        return Outcome(State.AWAITING_TAG_CHOICE, mode=picker.mode)

    # ── Reply path ───────────────────────────────────────────

    async def resolve_reply(self, msg: InboundMessage, user_id: int) -> Outcome:
        """Apply the tag named (or numbered) in a reply to a picker prompt."""
        chat_id = msg.chat_id
        prompt_text = msg.reply_to.text if msg.reply_to else None

        try:
            message_ref = self.codec.decode_prompt(prompt_text or "")
            message_id = await self.messages.resolve_id(user_id, message_ref)
        except OrganizerError as e:
            logger.warning(f"Could not resolve prompt for user {user_id}: {e}")
            return await self._fail(chat_id, e, GENERIC_NOT_FOUND)

        try:
            tag_name = await self._tag_name_from_reply(user_id, msg.text)
            tag_id = await self.tags.get_or_create(user_id, tag_name)
        except OrganizerError as e:
            return await self._fail(chat_id, e, TAG_FAILED)

        try:
            await self.tags.link(message_id, tag_id)
        except StoreError as e:
            logger.error(f"Error tagging message {message_id}: {e}")
            return await self._fail(chat_id, e, LINK_FAILED)

        logger.info(f"Tagged message {message_id} with '{tag_name}' for user {user_id}")
        await self.messenger.send(chat_id, confirmation_text(tag_name))
        return Outcome(State.RESOLVED, tag_id=tag_id, tag_name=tag_name, message_id=message_id)

    async def _tag_name_from_reply(self, user_id: int, text: Optional[str]) -> str:
        name = (text or "").strip()
        if not name:
            raise ValidationError(EMPTY_TAG_NAME)
        if not _INDEX_RE.fullmatch(name):
            return name

        index = int(name)
        tags = await self.tags.list_for_user(user_id)
        if index < 1 or index > len(tags):
            raise ValidationError(INVALID_TAG_NUMBER)
        return tags[index - 1].name

    # ── Button path ──────────────────────────────────────────

    async def _apply_tag_choice(self, cb: InboundCallback, user_id: int, action: TagChoice) -> Outcome:
        try:
            message_id = await self.messages.resolve_id(user_id, action.message_ref)
            # Scoped by owner: a tag id from someone else's keyboard is NotFound
            tag_name = await self.tags.get_name(user_id, action.tag_id)
        except OrganizerError as e:
            logger.warning(f"Tag callback rejected for user {user_id}: {e}")
            return await self._fail(cb.chat_id, e, GENERIC_NOT_FOUND)

        try:
            await self.tags.link(message_id, action.tag_id)
        except StoreError as e:
            logger.error(f"Error tagging message {message_id}: {e}")
            return await self._fail(cb.chat_id, e, LINK_FAILED)

        logger.info(f"Tagged message {message_id} with '{tag_name}' for user {user_id}")
        await self.messenger.send(cb.chat_id, confirmation_text(tag_name))
        if cb.message_id is not None:
            await self.messenger.edit_text(cb.chat_id, cb.message_id, picker_done_text(tag_name))
        return Outcome(State.RESOLVED, tag_id=action.tag_id, tag_name=tag_name, message_id=message_id)

    async def _ask_new_tag(self, cb: InboundCallback, action: NewTag) -> Outcome:
        """Switch to the reply path with a forced-reply prompt for the name."""
        prompt = render_new_tag_prompt(action.message_ref, self.codec)
        await self.messenger.send(cb.chat_id, prompt.text, markup=prompt.markup)
        if cb.message_id is not None:
            await self.messenger.edit_text(cb.chat_id, cb.message_id, WAITING_FOR_NAME)
        return Outcome(State.AWAITING_TAG_CHOICE, mode=prompt.mode)

    # ── Failure ──────────────────────────────────────────────

    async def _fail(
        self,
        chat_id: int,
        error: Exception,
        store_fallback: str = GENERIC_NOT_FOUND,
        reply_to: Optional[int] = None,
    ) -> Outcome:
        await self.messenger.send(chat_id, user_message(error, store_fallback), reply_to=reply_to)
        return Outcome(State.FAILED, error=error)
