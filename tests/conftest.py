"""Pytest configuration and shared fixtures."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from organizer.conversation.flow import TagSelectionFlow
from organizer.db.tags import Tag
from organizer.errors import Conflict, NotFound
from organizer.inbound import InboundCallback, InboundMessage, TelegramUser
from organizer.messenger import Messenger

BOT = TelegramUser(id=1, is_bot=True, username="organizer_bot", first_name="Organizer")
ALICE = TelegramUser(id=1001, username="alice", first_name="Alice")
BOB = TelegramUser(id=1002, username="bob", first_name="Bob")


# ── In-memory stores ─────────────────────────────────────────

class FakeUserStore:
    def __init__(self):
        self.ids: dict[int, int] = {}

    async def upsert(self, user):
        return self.ids.setdefault(user.id, len(self.ids) + 1)

    async def resolve(self, telegram_id):
        return self.ids.get(telegram_id)


class FakeMessageStore:
    def __init__(self):
        self.rows: dict[tuple[int, int], tuple[int, object]] = {}

    async def save(self, user_id, record):
        key = (user_id, record.telegram_message_id)
        if key in self.rows:
            raise Conflict("duplicate")
        row_id = len(self.rows) + 1
        self.rows[key] = (row_id, record)
        return row_id

    async def resolve_id(self, user_id, telegram_message_id):
        try:
            return self.rows[(user_id, telegram_message_id)][0]
        except KeyError:
            raise NotFound("no such message") from None

    def record(self, user_id, telegram_message_id):
        return self.rows[(user_id, telegram_message_id)][1]


class FakeTagStore:
    def __init__(self):
        self.tags: dict[int, tuple[int, str]] = {}
        self.links: set[tuple[int, int]] = set()

    def add(self, user_id, *names) -> list[int]:
        ids = []
        for name in names:
            tag_id = len(self.tags) + 1
            self.tags[tag_id] = (user_id, name)
            ids.append(tag_id)
        return ids

    def names_for(self, user_id):
        return sorted(name for owner, name in self.tags.values() if owner == user_id)

    def linked_names(self, message_id):
        return sorted(self.tags[t][1] for m, t in self.links if m == message_id)

    async def list_for_user(self, user_id):
        owned = [(name, tag_id) for tag_id, (owner, name) in self.tags.items() if owner == user_id]
        return [Tag(id=tag_id, name=name) for name, tag_id in sorted(owned)]

    async def get_or_create(self, user_id, name):
        for tag_id, (owner, tag_name) in self.tags.items():
            if owner == user_id and tag_name == name:
                return tag_id
        return self.add(user_id, name)[0]

    async def get_name(self, user_id, tag_id):
        owner, name = self.tags.get(tag_id, (None, None))
        if owner != user_id:
            raise NotFound("no such tag")
        return name

    async def link(self, message_id, tag_id):
        self.links.add((message_id, tag_id))


# ── Builders ─────────────────────────────────────────────────

def make_message(message_id=10, user=ALICE, chat_id=None, reply_to=None, **fields) -> InboundMessage:
    return InboundMessage(
        message_id=message_id,
        chat_id=chat_id if chat_id is not None else (user.id if user else 0),
        from_user=user,
        reply_to=reply_to,
        **fields,
    )


def make_prompt(text, message_id=500, chat_id=ALICE.id) -> InboundMessage:
    """A message previously sent by the bot."""
    return InboundMessage(message_id=message_id, chat_id=chat_id, from_user=BOT, text=text)


def make_callback(data, user=ALICE, message_id=500) -> InboundCallback:
    return InboundCallback(id="cb-1", from_user=user, data=data, chat_id=user.id, message_id=message_id)


def make_fake_db(conn):
    """Stand-in for Database whose connection() yields ``conn``."""
    db = MagicMock()

    @asynccontextmanager
    async def _connection():
        yield conn

    db.connection = _connection
    return db


# ── Fixtures ─────────────────────────────────────────────────

@pytest.fixture
def users():
    return FakeUserStore()


@pytest.fixture
def messages():
    return FakeMessageStore()


@pytest.fixture
def tags():
    return FakeTagStore()


@pytest.fixture
def messenger():
    return AsyncMock(spec=Messenger)


@pytest.fixture
def flow(users, messages, tags, messenger):
    return TagSelectionFlow(users=users, messages=messages, tags=tags, messenger=messenger)


@pytest.fixture
def conn():
    return AsyncMock()
