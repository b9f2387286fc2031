"""Trigger rules.

A rule looks at one inbound envelope and either returns the reply to send
or None.  Rules run on the receive loop, so they must not block.
"""

import re
from typing import Callable, Iterable, Optional, Union

from .envelope import MESSAGE_TYPE, InboundEnvelope, OutboundEnvelope

Rule = Callable[[InboundEnvelope], Optional[OutboundEnvelope]]

DEFAULT_TRIGGER = "出勤"
DEFAULT_REPLY = "出勤を検知"


class KeywordRule:
    """Reply with fixed text when the message body matches a pattern."""

    def __init__(
        self,
        pattern: Union[str, re.Pattern] = DEFAULT_TRIGGER,
        reply: str = DEFAULT_REPLY,
        types: Iterable[str] = (MESSAGE_TYPE,),
    ):
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern
        self.reply = reply
        self.types = frozenset(types)

    def __call__(self, msg: InboundEnvelope) -> Optional[OutboundEnvelope]:
        if msg.type not in self.types:
            return None
        if not self.pattern.search(msg.body):
            return None
        return msg.reply(self.reply)

    def __repr__(self) -> str:
        return f"KeywordRule({self.pattern.pattern!r} -> {self.reply!r})"


def first_match(rules: Iterable[Rule], msg: InboundEnvelope) -> Optional[OutboundEnvelope]:
    """Return the reply from the first rule that produces one."""
    for rule in rules:
        reply = rule(msg)
        if reply is not None:
            return reply
    return None
