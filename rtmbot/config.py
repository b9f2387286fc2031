"""rtmbot configuration management."""

import logging
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from .handshake import DISCOVERY_URL
from .rules import DEFAULT_REPLY, DEFAULT_TRIGGER
from .session import DEFAULT_ORIGIN


class RTMBotSettings(BaseSettings):
    """Settings loaded from environment variables or .env file."""

    # Slack — the one required credential
    slack_api_token: str = Field(
        default="",
        validation_alias=AliasChoices("SLACK_API_TOKEN", "RTMBOT_SLACK_API_TOKEN"),
        description="Slack bot token passed to rtm.start",
    )

    # Endpoints
    discovery_url: str = Field(default=DISCOVERY_URL, description="rtm.start endpoint")
    origin: str = Field(default=DEFAULT_ORIGIN, description="Origin header for the WebSocket")

    # Trigger
    trigger_pattern: str = Field(default=DEFAULT_TRIGGER, description="Regex searched in message bodies")
    reply_text: str = Field(default=DEFAULT_REPLY, description="Text posted when the trigger matches")

    # Logging
    log_file: Optional[str] = Field(default=None, description="Also write logs to this file")
    debug: bool = Field(default=False, description="Debug logging")

    model_config = {
        "env_prefix": "RTMBOT_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }


def load_settings() -> RTMBotSettings:
    """Load settings from environment."""
    settings = RTMBotSettings()

    logger = logging.getLogger("rtmbot.config")
    if not settings.slack_api_token:
        logger.warning("SLACK_API_TOKEN is not set.")
    elif not settings.slack_api_token.startswith("xox"):
        logger.warning("SLACK_API_TOKEN does not look like a Slack token (expected xox...).")

    return settings
