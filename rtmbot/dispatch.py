"""Receive loop: read, drop our own echoes, match triggers, reply in the background."""

import asyncio
import logging
from typing import Iterable, Optional

from .envelope import InboundEnvelope, OutboundEnvelope
from .errors import ReceiveError, SendError
from .rules import KeywordRule, Rule, first_match
from .session import Session

logger = logging.getLogger("rtmbot.dispatch")


class Dispatcher:
    """Single listening state, re-entered after every receive.

    Replies are fire-and-forget tasks so a slow send never stalls the next
    receive.  There is no cap on in-flight replies.
    """

    def __init__(self, session: Session, rules: Optional[Iterable[Rule]] = None):
        self.session = session
        self.rules = list(rules) if rules is not None else [KeywordRule()]
        self._reply_tasks: set[asyncio.Task] = set()
        self.send_failures = 0

    @property
    def pending(self) -> int:
        return len(self._reply_tasks)

    async def run(self):
        """Loop until cancelled. Receive errors are logged, never fatal."""
        while True:
            try:
                msg = await self.session.receive()
            except ReceiveError as e:
                logger.warning(f"Receive failed: {e}")
                # A closed socket fails without awaiting; let reply tasks run
                await asyncio.sleep(0)
                continue
            self.handle(msg)

    def handle(self, msg: InboundEnvelope) -> Optional[asyncio.Task]:
        """Apply self-suppression and the rules to one envelope.

        Returns the spawned reply task, or None when nothing is sent.
        """
        # Our own messages come back through the stream
        if msg.speaker_id == self.session.id:
            return None

        reply = first_match(self.rules, msg)
        if reply is None:
            return None

        task = asyncio.create_task(self._send_reply(reply))
        self._reply_tasks.add(task)
        task.add_done_callback(self._reply_done)
        return task

    async def _send_reply(self, reply: OutboundEnvelope) -> int:
        seq = await self.session.send(reply)
        logger.info(f"Replied in {reply.channel} (id={seq}): {reply.text}")
        return seq

    def _reply_done(self, task: asyncio.Task):
        self._reply_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        self.send_failures += 1
        if isinstance(exc, SendError):
            logger.error(f"Reply dropped: {exc}")
        else:
            logger.error(f"Reply failed: {type(exc).__name__}: {exc}", exc_info=exc)

    async def drain(self):
        """Wait for every in-flight reply to finish."""
        if self._reply_tasks:
            await asyncio.gather(*list(self._reply_tasks), return_exceptions=True)
