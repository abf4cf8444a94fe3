"""Database management commands."""

import asyncio

import click

from . import cli
from .shared import console, open_database


@cli.group()
def db():
    """Database management commands."""
    pass


@db.command("init")
def db_init():
    """Initialize database schema."""
    async def _init():
        async with open_database() as database:
            await database.init_schema()
        console.print("[green]✓ Database schema initialized[/green]")

    asyncio.run(_init())


@db.command("reset")
@click.confirmation_option(prompt="This will DELETE ALL DATA. Are you sure?")
def db_reset():
    """Reset database (DROP ALL + re-init)."""
    async def _reset():
        async with open_database() as database:
            await database.drop_schema()
            console.print("[yellow]Tables dropped.[/yellow]")
            await database.init_schema()
        console.print("[green]✓ Database re-initialized[/green]")

    asyncio.run(_reset())
