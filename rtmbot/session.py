"""RTM streaming session.

StreamingSession owns the one WebSocket to Slack and hands out outbound
sequence numbers.  Session adds the identity and lookup tables returned by
rtm.start; those tables are filled once and read-only afterwards.
"""

import asyncio
import itertools
import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx
import websockets
from websockets.exceptions import WebSocketException

from . import handshake
from .envelope import InboundEnvelope, OutboundEnvelope
from .errors import ReceiveError, SendError, StreamConnectionError
from .handshake import HandshakeResult

logger = logging.getLogger("rtmbot.session")

DEFAULT_ORIGIN = "https://api.slack.com/"

Connector = Callable[..., Awaitable[Any]]


class StreamingSession:
    """One persistent WebSocket plus the outbound ``id`` counter.

    Usage:
        async with StreamingSession() as stream:
            await stream.connect(url)
            msg = await stream.receive()
            await stream.send(msg.reply("hi"))
    """

    def __init__(self, origin: str = DEFAULT_ORIGIN, connector: Optional[Connector] = None):
        self.origin = origin
        self._connector = connector or websockets.connect
        self._ws: Optional[Any] = None
        # next() on a count never yields to the event loop, so concurrent
        # senders can't observe the same value.
        self._counter = itertools.count(1)

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self, url: str) -> None:
        """Open the WebSocket. Must be called exactly once.

        Raises:
            StreamConnectionError: the upgrade failed for any reason.
        """
        if self._ws is not None:
            raise RuntimeError("StreamingSession is already connected")
        try:
            self._ws = await self._connector(url, origin=self.origin)
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise StreamConnectionError("dial error", e) from e
        logger.info("RTM stream connected.")

    def _require_ws(self):
        if self._ws is None:
            raise RuntimeError("StreamingSession is not connected. Call connect() first.")
        return self._ws

    async def receive(self) -> InboundEnvelope:
        """Wait for one inbound envelope.

        Raises:
            ReceiveError: read failed or the frame did not decode.
        """
        ws = self._require_ws()
        try:
            raw = await ws.recv()
        except (WebSocketException, OSError) as e:
            raise ReceiveError("receive error", e) from e
        try:
            msg = InboundEnvelope.from_json(raw)
        except ValueError as e:
            raise ReceiveError("frame decode error", e) from e
        logger.debug(f"<- {msg.type or '-'} channel={msg.channel or '-'} user={msg.user or '-'}")
        return msg

    def next_id(self) -> int:
        """Reserve the next outbound sequence number (starts at 1)."""
        return next(self._counter)

    async def send(self, envelope: OutboundEnvelope) -> int:
        """Number, encode and write one envelope. No retry, no buffering.

        Returns:
            The sequence number assigned to ``envelope``.

        Raises:
            SendError: the write failed. The number is not reused.
        """
        ws = self._require_ws()
        envelope.id = self.next_id()
        try:
            await ws.send(envelope.to_json())
        except (WebSocketException, OSError) as e:
            raise SendError(f"send error (id={envelope.id})", e) from e
        logger.debug(f"-> {envelope.type} channel={envelope.channel} id={envelope.id}")
        return envelope.id

    async def close(self) -> None:
        """Release the connection. Call once, at shutdown."""
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
            logger.info("RTM stream closed.")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()


class Session:
    """A connected bot: who we are, what we know, and the stream."""

    def __init__(self, result: HandshakeResult, stream: StreamingSession):
        self.id = result.self_id
        self.name = result.self_name
        self._users: Mapping[str, str] = MappingProxyType(dict(result.users))
        self._channels: Mapping[str, str] = MappingProxyType(dict(result.channels))
        self._ims: Mapping[str, str] = MappingProxyType(dict(result.ims))
        self.stream = stream

    @classmethod
    async def open(
        cls,
        token: str,
        *,
        discovery_url: str = handshake.DISCOVERY_URL,
        origin: str = DEFAULT_ORIGIN,
        client: Optional[httpx.AsyncClient] = None,
        connector: Optional[Connector] = None,
    ) -> "Session":
        """Handshake, then connect. Nothing is opened if the handshake fails.

        Raises:
            HandshakeError: rtm.start failed.
            StreamConnectionError: the WebSocket could not be opened.
        """
        result = await handshake.start(token, url=discovery_url, client=client)
        stream = StreamingSession(origin=origin, connector=connector)
        await stream.connect(result.url)
        return cls(result, stream)

    # -- Read-only world-state from rtm.start --

    @property
    def users(self) -> Mapping[str, str]:
        return self._users

    @property
    def channels(self) -> Mapping[str, str]:
        return self._channels

    @property
    def ims(self) -> Mapping[str, str]:
        return self._ims

    def user_name(self, user_id: str) -> Optional[str]:
        return self._users.get(user_id)

    def channel_name(self, channel_id: str) -> Optional[str]:
        return self._channels.get(channel_id)

    def im_user(self, im_id: str) -> Optional[str]:
        return self._ims.get(im_id)

    # -- Stream primitives --

    async def receive(self) -> InboundEnvelope:
        return await self.stream.receive()

    async def send(self, envelope: OutboundEnvelope) -> int:
        return await self.stream.send(envelope)

    async def close(self) -> None:
        await self.stream.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()
