"""Shared utilities for CLI commands."""

from contextlib import asynccontextmanager

from rich.console import Console

console = Console()


@asynccontextmanager
async def open_database():
    """Open the configured database for the duration of one command."""
    from organizer.config import load_settings
    from organizer.db import Database

    settings = load_settings()
    db = Database(settings.database_url, min_size=1, max_size=2)
    await db.open(max_retries=1)
    try:
        yield db
    finally:
        await db.close()
