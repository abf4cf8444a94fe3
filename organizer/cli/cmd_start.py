"""Start command."""

import asyncio
import logging

import click

from . import cli
from .shared import console


@cli.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def start(debug):
    """Start the Telegram bot."""
    from organizer.config import load_settings
    from organizer.main import run, setup_logging

    settings = load_settings()
    if debug:
        settings.debug = True
    setup_logging(settings)
    if debug:
        logging.getLogger("organizer").setLevel(logging.DEBUG)

    console.print("[bold blue]Starting Content Organizer...[/bold blue]")
    asyncio.run(run(settings))
