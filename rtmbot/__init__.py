"""rtmbot — minimal Slack RTM bot that answers trigger words."""

__version__ = "0.1.0"
