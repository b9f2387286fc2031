"""Pytest configuration and shared fixtures."""

import asyncio
import json

import pytest


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection.

    ``frames`` are returned by recv() in order; an exception instance in the
    list is raised instead.  Once empty, recv() sets ``exhausted`` and blocks.
    """

    def __init__(self, frames=(), send_error=None):
        self.frames = list(frames)
        self.sent: list[str] = []
        self.send_error = send_error
        self.closed = False
        self.exhausted = asyncio.Event()

    async def recv(self):
        if not self.frames:
            self.exhausted.set()
            await asyncio.Event().wait()
        item = self.frames.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, data):
        await asyncio.sleep(0)
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    async def close(self):
        self.closed = True

    @property
    def sent_json(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]


class FakeConnector:
    """Records connect() calls and hands back a FakeWebSocket."""

    def __init__(self, ws=None, error=None):
        self.ws = ws if ws is not None else FakeWebSocket()
        self.error = error
        self.calls: list[tuple] = []

    async def __call__(self, url, origin=None):
        self.calls.append((url, origin))
        if self.error is not None:
            raise self.error
        return self.ws


def frame(**fields) -> str:
    """Encode one inbound frame."""
    return json.dumps(fields, ensure_ascii=False)


@pytest.fixture
def fake_ws():
    return FakeWebSocket()


@pytest.fixture
def connector(fake_ws):
    return FakeConnector(fake_ws)


@pytest.fixture
def rtm_start_body():
    return {
        "ok": True,
        "url": "wss://x",
        "self": {"id": "B1", "name": "bot"},
        "users": [{"id": "U1", "name": "alice"}, {"id": "U2", "name": "bob"}],
        "channels": [
            {"id": "C1", "name": "general", "is_member": True},
            {"id": "C2", "name": "random", "is_member": False},
        ],
        "ims": [{"id": "D1", "user": "U1"}],
    }
