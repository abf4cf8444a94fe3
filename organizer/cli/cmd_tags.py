"""Read-only views over a user's tags: what the mini-app shows."""

import asyncio

import click
from rich.table import Table

from . import cli
from .shared import console, open_database


def tags_table(tags) -> Table:
    table = Table(title="Tags")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Messages", justify="right")
    table.add_column("Color")
    for tag in tags:
        table.add_row(str(tag.id), tag.name, str(tag.message_count), tag.color or "")
    return table


def messages_table(messages) -> Table:
    table = Table(title="Messages", show_lines=True)
    table.add_column("ID", justify="right")
    table.add_column("Type")
    table.add_column("Preview")
    table.add_column("From")
    table.add_column("Hashtags")
    table.add_column("URLs")
    for m in messages:
        preview = m.text_content or m.caption or m.file_name or ""
        table.add_row(
            str(m.id),
            m.message_type,
            preview,
            m.forwarded_from or "",
            " ".join(f"#{h}" for h in m.hashtags),
            "\n".join(m.urls),
        )
    return table


@cli.group()
def tags():
    """Browse tags and tagged messages."""
    pass


@tags.command("list")
@click.argument("telegram_id", type=int)
def tags_list(telegram_id):
    """List tags of a Telegram user, most used first."""
    async def _list():
        from organizer.db import TagStore, UserStore

        async with open_database() as database:
            user_id = await UserStore(database).resolve(telegram_id)
            if user_id is None:
                console.print(f"[yellow]No user with Telegram id {telegram_id}.[/yellow]")
                return
            rows = await TagStore(database).list_with_counts(user_id)

        if not rows:
            console.print("[yellow]No tags yet.[/yellow]")
            return
        console.print(tags_table(rows))

    asyncio.run(_list())


@tags.command("messages")
@click.argument("telegram_id", type=int)
@click.argument("tag_id", type=int)
def tags_messages(telegram_id, tag_id):
    """List messages carrying TAG_ID for a Telegram user, newest first."""
    async def _messages():
        from organizer.db import TagStore, UserStore
        from organizer.errors import NotFound

        async with open_database() as database:
            user_id = await UserStore(database).resolve(telegram_id)
            if user_id is None:
                console.print(f"[yellow]No user with Telegram id {telegram_id}.[/yellow]")
                return
            try:
                rows = await TagStore(database).list_messages_for_tag(user_id, tag_id)
            except NotFound:
                console.print(f"[red]Tag {tag_id} not found or you don't have access to it.[/red]")
                return False

        if not rows:
            console.print("[yellow]No messages with this tag.[/yellow]")
            return True
        console.print(messages_table(rows))
        return True

    if asyncio.run(_messages()) is False:
        raise click.exceptions.Exit(1)
