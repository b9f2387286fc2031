"""rtmbot CLI — command line interface."""

import click
from rich.console import Console

from rtmbot import __version__

console = Console()


@click.command(name="rtmbot")
def cli():
    """Run the Slack RTM trigger bot until interrupted."""
    console.print(f"[bold blue]Starting rtmbot v{__version__}...[/bold blue]")

    from rtmbot.main import main
    main()
