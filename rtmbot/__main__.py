"""Allow ``python -m rtmbot``."""

from rtmbot.cli import cli

cli()
