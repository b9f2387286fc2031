"""rtmbot — Main entry point."""

import asyncio
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from .config import RTMBotSettings, load_settings
from .dispatch import Dispatcher
from .errors import HandshakeError, RTMError
from .rules import KeywordRule
from .session import Session

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("rtmbot")


def setup_logging(settings: RTMBotSettings):
    """Console always, plus a log file when RTMBOT_LOG_FILE is set."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]  # stderr (console)
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=_log_format,
        handlers=handlers,
    )


async def run(settings: Optional[RTMBotSettings] = None, **session_kwargs):
    """Connect and answer triggers until cancelled.

    Raises:
        HandshakeError: no token, or rtm.start failed.
        StreamConnectionError: the WebSocket could not be opened.
    """
    from .cli import console

    settings = settings or load_settings()
    if not settings.slack_api_token:
        raise HandshakeError("SLACK_API_TOKEN is not set")

    session = await Session.open(
        settings.slack_api_token,
        discovery_url=settings.discovery_url,
        origin=settings.origin,
        **session_kwargs,
    )
    dispatcher = Dispatcher(session, [KeywordRule(settings.trigger_pattern, settings.reply_text)])
    try:
        logger.info(f"Connected as {session.name} ({session.id}), watching {len(session.channels)} channels.")
        console.print("^C exits")
        await dispatcher.run()
    finally:
        await dispatcher.drain()
        await session.close()


def main():
    """Entry point."""
    try:
        settings = load_settings()
    except ValidationError as e:
        logger.critical(f"Invalid settings: {e}")
        sys.exit(1)
    setup_logging(settings)
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass
    except RTMError as e:
        logger.critical(f"Startup failed: {type(e).__name__}: {e}")
        sys.exit(1)
