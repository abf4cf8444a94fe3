"""Content Organizer CLI: command line interface."""

import click

from organizer import __version__
from .shared import console


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="organizer")
@click.pass_context
def cli(ctx):
    """Content Organizer: tag forwarded Telegram content"""
    if ctx.invoked_subcommand is None:
        _show_help()


def _show_help():
    """Show all available commands grouped by category."""
    console.print(f"[bold]Content Organizer v{__version__}[/bold]\n")

    groups = {
        "Usage": [
            ("start", "Start the Telegram bot"),
        ],
        "Data": [
            ("db init", "Initialize database schema"),
            ("db reset", "Reset database (DROP ALL + re-init)"),
            ("tags list", "List a user's tags with message counts"),
            ("tags messages", "List messages carrying a tag"),
        ],
    }

    for category, commands in groups.items():
        console.print(f"  [bold cyan]{category}[/bold cyan]")
        for name, desc in commands:
            console.print(f"    [bold]organizer {name:14s}[/bold] {desc}")
        console.print()

    console.print("[dim]Run 'organizer <command> --help' for details on a specific command.[/dim]")


# Import all command modules (registers commands onto cli group)
from . import cmd_start  # noqa: E402, F401
from . import cmd_db  # noqa: E402, F401
from . import cmd_tags  # noqa: E402, F401
