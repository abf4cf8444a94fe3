"""Content Organizer: tag forwarded Telegram content from inside the chat."""

__version__ = "0.3.0"
