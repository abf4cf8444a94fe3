"""Telegram channel adapter: handler wiring around the tagging flow."""

import asyncio
import logging
from typing import Optional

from telegram import BotCommand, Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..config import OrganizerSettings
from ..conversation.flow import TagSelectionFlow
from ..db import Database, MessageStore, TagStore, UserStore
from ..errors import StoreError
from ..inbound import from_telegram_callback, from_telegram_message
from ..messenger import Button, InlineKeyboard, TelegramMessenger

logger = logging.getLogger("organizer.telegram")

START_TEXT = (
    "Hello! I'm your Telegram Content Organizer bot. "
    "Send me any message or forward content to me!"
)
HELP_TEXT = (
    "Available commands:\n"
    "/start - Get started\n"
    "/help - Show this help message\n"
    "/miniapp - Open mini-app to view your tags\n\n"
    "You can also send me any message or forward content to me."
)
MINIAPP_TEXT = "Open the mini-app to view and manage your tags:"
MINIAPP_BUTTON = "🏷️ View My Tags"

ALLOWED_UPDATES = ["message", "callback_query"]


class TelegramChannel:
    """Telegram bot adapter.

    Owns the python-telegram-bot Application; everything conversational is
    delegated to :class:`TagSelectionFlow`.
    """

    def __init__(self, settings: OrganizerSettings, db: Database):
        self.settings = settings
        self.db = db
        self.app: Optional[Application] = None
        self.flow: Optional[TagSelectionFlow] = None

    def _build_flow(self) -> TagSelectionFlow:
        return TagSelectionFlow(
            users=UserStore(self.db),
            messages=MessageStore(self.db),
            tags=TagStore(self.db),
            messenger=TelegramMessenger(self.app.bot),
        )

    def _register_handlers(self):
        """Register all Telegram handlers on self.app."""
        # Edited messages are ignored everywhere
        new_only = filters.UpdateType.MESSAGE
        self.app.add_handler(CommandHandler("start", self._cmd_start, filters=new_only))
        self.app.add_handler(CommandHandler("help", self._cmd_help, filters=new_only))
        self.app.add_handler(CommandHandler("miniapp", self._cmd_miniapp, filters=new_only))
        # Unknown commands
        self.app.add_handler(MessageHandler(new_only & filters.COMMAND, self._cmd_unknown))
        # Everything else is content (or a reply to a tag prompt)
        self.app.add_handler(MessageHandler(new_only & ~filters.COMMAND, self._handle_message))
        self.app.add_handler(CallbackQueryHandler(self._handle_callback))
        self.app.add_error_handler(self._handle_error)

    async def start(self):
        """Start the bot in polling or webhook mode."""
        self.app = (
            Application.builder()
            .token(self.settings.telegram_bot_token)
            .concurrent_updates(True)
            .build()
        )
        self.flow = self._build_flow()
        self._register_handlers()

        logger.info("Starting Telegram bot...")
        # getMe can time out transiently
        for attempt in range(5):
            try:
                await self.app.initialize()
                break
            except Exception as e:
                if attempt < 4:
                    delay = [2, 5, 10, 15][attempt]
                    logger.warning(
                        f"Telegram init failed (attempt {attempt + 1}/5): {type(e).__name__}: {e}. "
                        f"Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                else:
                    raise
        await self.app.start()

        if self.settings.webhook_url:
            await self.app.updater.start_webhook(
                listen=self.settings.webhook_listen,
                port=self.settings.webhook_port,
                url_path="telegram",
                webhook_url=self.settings.webhook_url,
                secret_token=self.settings.webhook_secret,
                allowed_updates=ALLOWED_UPDATES,
            )
            logger.info(f"Webhook listening on {self.settings.webhook_listen}:{self.settings.webhook_port}")
        else:
            await self.app.updater.start_polling(allowed_updates=ALLOWED_UPDATES)
            logger.info("Polling for updates")

        await self.app.bot.set_my_commands([
            BotCommand("start", "Get started"),
            BotCommand("help", "Show help"),
            BotCommand("miniapp", "Open mini-app to view your tags"),
        ])
        logger.info("Telegram bot started.")

    async def stop(self):
        """Stop the Telegram bot."""
        if self.app:
            if self.app.updater and self.app.updater.running:
                await self.app.updater.stop()
            await self.app.stop()
            await self.app.shutdown()
            logger.info("Telegram bot stopped.")

    @property
    def running(self) -> bool:
        return bool(self.app and self.app.running)

    # ── Conversation ─────────────────────────────────────────

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not update.message:
            return
        await self.flow.handle_message(from_telegram_message(update.message))

    async def _handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not update.callback_query:
            return
        await self.flow.handle_callback(from_telegram_callback(update.callback_query))

    # ── Commands ─────────────────────────────────────────────

    async def _reply(self, update: Update, text: str):
        await update.effective_message.reply_text(text, do_quote=True)

    async def _cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._upsert_sender(update)
        await self._reply(update, START_TEXT)

    async def _cmd_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._upsert_sender(update)
        await self._reply(update, HELP_TEXT)

    async def _cmd_unknown(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._upsert_sender(update)
        await self._reply(update, "Unknown command. Use /help to see available commands.")

    async def _cmd_miniapp(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self._upsert_sender(update)
        if not self.settings.miniapp_url:
            await self._reply(update, "The mini-app is not configured.")
            return
        keyboard = InlineKeyboard(rows=[[Button(MINIAPP_BUTTON, url=self.settings.miniapp_url)]])
        await self.flow.messenger.send(update.effective_chat.id, MINIAPP_TEXT, markup=keyboard)

    async def _upsert_sender(self, update: Update):
        """Commands register the user too; a failure here is only logged."""
        message = update.effective_message
        if message is None or message.from_user is None:
            return
        user = from_telegram_message(message, include_reply=False).from_user
        try:
            await self.flow.users.upsert(user)
        except StoreError as e:
            logger.error(f"Error saving user {user.id}: {e}")

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle errors in update processing."""
        error = context.error
        if update:
            logger.error(
                f"Telegram error processing update {type(update).__name__}: {type(error).__name__}: {error}",
                exc_info=error,
            )
        else:
            logger.error(f"Telegram error (no update): {type(error).__name__}: {error}", exc_info=error)
