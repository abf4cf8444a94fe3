"""Tests for the Telegram channel adapter."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import Chat, Message, MessageEntity, Update, User
from telegram.ext import CommandHandler, MessageHandler

from organizer.channels.telegram import HELP_TEXT, MINIAPP_BUTTON, START_TEXT, TelegramChannel
from organizer.config import OrganizerSettings
from organizer.errors import StoreError
from organizer.messenger import InlineKeyboard

DATE = datetime(2024, 6, 1, tzinfo=timezone.utc)
ALICE = User(id=1001, first_name="Alice", is_bot=False, username="alice")


def _message(text):
    entities = ()
    if text.startswith("/"):
        entities = (MessageEntity(MessageEntity.BOT_COMMAND, 0, len(text.split()[0])),)
    message = Message(
        message_id=10, date=DATE, chat=Chat(id=1001, type=Chat.PRIVATE), from_user=ALICE,
        text=text, entities=entities,
    )
    message.set_bot(MagicMock(username="organizer_bot"))
    return message


def _update(text):
    return Update(update_id=1, message=_message(text))


def _edited(text):
    return Update(update_id=2, edited_message=_message(text))


@pytest.fixture
def channel(monkeypatch):
    settings = OrganizerSettings(
        telegram_bot_token="123:abc",
        miniapp_url="https://app.example.com",
        log_file="",
    )
    channel = TelegramChannel(settings, db=MagicMock())
    channel.flow = MagicMock()
    channel.flow.users.upsert = AsyncMock(return_value=1)
    channel.flow.messenger.send = AsyncMock()
    channel.flow.handle_message = AsyncMock()
    channel.flow.handle_callback = AsyncMock()
    channel._reply = AsyncMock()
    return channel


@pytest.mark.asyncio
async def test_start_registers_user(channel):
    update = _update("/start")
    await channel._cmd_start(update, MagicMock())

    assert channel.flow.users.upsert.call_args.args[0].id == 1001
    channel._reply.assert_awaited_once_with(update, START_TEXT)


@pytest.mark.asyncio
async def test_help(channel):
    update = _update("/help")
    await channel._cmd_help(update, MagicMock())
    channel._reply.assert_awaited_once_with(update, HELP_TEXT)


@pytest.mark.asyncio
async def test_command_survives_store_error(channel):
    channel.flow.users.upsert.side_effect = StoreError("db down")
    update = _update("/start")

    await channel._cmd_start(update, MagicMock())

    channel._reply.assert_awaited_once_with(update, START_TEXT)


@pytest.mark.asyncio
async def test_miniapp_button(channel):
    await channel._cmd_miniapp(_update("/miniapp"), MagicMock())

    chat_id, _ = channel.flow.messenger.send.call_args.args
    keyboard = channel.flow.messenger.send.call_args.kwargs["markup"]
    assert chat_id == 1001
    assert isinstance(keyboard, InlineKeyboard)
    button = keyboard.rows[0][0]
    assert (button.label, button.url) == (MINIAPP_BUTTON, "https://app.example.com")


@pytest.mark.asyncio
async def test_miniapp_not_configured(channel):
    channel.settings.miniapp_url = ""
    update = _update("/miniapp")

    await channel._cmd_miniapp(update, MagicMock())

    channel.flow.messenger.send.assert_not_awaited()
    channel._reply.assert_awaited_once_with(update, "The mini-app is not configured.")


@pytest.mark.asyncio
async def test_message_delegates_to_flow(channel):
    await channel._handle_message(_update("some content"), MagicMock())

    inbound = channel.flow.handle_message.call_args.args[0]
    assert inbound.text == "some content"
    assert inbound.from_user.username == "alice"


@pytest.mark.asyncio
async def test_update_without_message_ignored(channel):
    update = MagicMock()
    update.message = None
    await channel._handle_message(update, MagicMock())
    channel.flow.handle_message.assert_not_awaited()


def test_not_running_before_start(channel):
    assert channel.running is False


@pytest.mark.asyncio
async def test_edited_command_handled_without_message(channel):
    update = _edited("/help")

    await channel._cmd_help(update, MagicMock())

    assert channel.flow.users.upsert.call_args.args[0].id == 1001
    channel._reply.assert_awaited_once_with(update, HELP_TEXT)


@pytest.mark.asyncio
async def test_reply_goes_to_effective_message():
    update = MagicMock()
    update.message = None
    update.effective_message.reply_text = AsyncMock()

    await TelegramChannel._reply(MagicMock(), update, "hi")

    update.effective_message.reply_text.assert_awaited_once_with("hi", do_quote=True)


def _registered(channel):
    channel.app = MagicMock()
    channel._register_handlers()
    return [c.args[0] for c in channel.app.add_handler.call_args_list]


def test_command_handlers_skip_edited_messages(channel):
    handlers = _registered(channel)
    help_handler = next(h for h in handlers if isinstance(h, CommandHandler) and "help" in h.commands)

    assert help_handler.check_update(_update("/help"))
    assert not help_handler.check_update(_edited("/help"))


def test_edited_content_is_not_ingested(channel):
    handlers = _registered(channel)
    content = [h for h in handlers if isinstance(h, MessageHandler) and h.callback == channel._handle_message]

    assert len(content) == 1
    assert content[0].check_update(_update("some content"))
    assert not content[0].check_update(_edited("some content"))
