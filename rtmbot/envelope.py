"""RTM wire envelopes.

Inbound frames arrive as JSON objects ``{type, channel, ts, user, text}``;
outbound frames are ``{id, type, channel, text}``.  Slack also pushes
frames like ``{"type": "hello"}`` or send acks without a type, so every
inbound field falls back to an empty string.
"""

import json
import re
from dataclasses import dataclass
from typing import Tuple, Union

# Optional leading "<@U123>" mention, optional ":" and whitespace, then body.
_MENTION_RE = re.compile(r'(?:<@(.+)>)?(?::?\s+)?(.*)')

MESSAGE_TYPE = "message"


def parse_text(text: str) -> Tuple[str, str]:
    """Split raw message text into (speaker_id, body).

    "<@U1> hello" -> ("U1", "hello")
    "hello"       -> ("", "hello")
    ""            -> ("", "")
    """
    match = _MENTION_RE.match(text or "")
    if match is None:
        return "", ""
    return match.group(1) or "", match.group(2) or ""


def _field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class InboundEnvelope:
    type: str = ""
    channel: str = ""
    ts: str = ""
    user: str = ""
    text: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "InboundEnvelope":
        return cls(
            type=_field(data, "type"),
            channel=_field(data, "channel"),
            ts=_field(data, "ts"),
            user=_field(data, "user"),
            text=_field(data, "text"),
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "InboundEnvelope":
        """Decode one wire frame.

        Raises:
            ValueError: frame is not JSON or not a JSON object.
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"expected JSON object, got {type(data).__name__}")
        return cls.from_dict(data)

    @property
    def speaker_id(self) -> str:
        """Mention ID parsed from the text, not the gateway's ``user`` field."""
        return parse_text(self.text)[0]

    @property
    def body(self) -> str:
        """Text with the leading mention stripped."""
        return parse_text(self.text)[1]

    def reply(self, text: str) -> "OutboundEnvelope":
        """Build a reply of the same type into the same channel."""
        return OutboundEnvelope(type=self.type, channel=self.channel, text=text)


@dataclass
class OutboundEnvelope:
    type: str
    channel: str
    text: str
    id: int = 0  # assigned by StreamingSession.send

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "channel": self.channel, "text": self.text}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
