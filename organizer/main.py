"""Content Organizer: main entry point."""

import asyncio
import logging
import os

from .config import OrganizerSettings, load_settings
from .channels.telegram import TelegramChannel
from .db import Database

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("organizer")


def setup_logging(settings: OrganizerSettings):
    """Console always, plus a log file unless ORGANIZER_LOG_FILE is empty."""
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(os.path.expanduser(settings.log_file), encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=_log_format,
        handlers=handlers,
    )
    # httpx logs every Bot API request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run(settings: OrganizerSettings | None = None):
    """Main run loop."""
    settings = settings or load_settings()
    if not settings.telegram_bot_token:
        logger.error("No Telegram bot token configured. Set ORGANIZER_TELEGRAM_BOT_TOKEN in .env.")
        return

    db = Database(settings.database_url, min_size=settings.db_min_pool, max_size=settings.db_max_pool)
    channel = None

    try:
        await db.open()
        channel = TelegramChannel(settings, db)
        await channel.start()

        logger.info("Content Organizer is running. Press Ctrl+C to stop.")
        while channel.running:
            await asyncio.sleep(1)

    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    except Exception as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}", exc_info=True)
    finally:
        if channel:
            await channel.stop()
        await db.close()


def main():
    """Entry point."""
    settings = load_settings()
    setup_logging(settings)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
