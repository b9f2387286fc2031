"""Tests for the rtm.start handshake."""

import httpx
import pytest

from rtmbot.errors import HandshakeError
from rtmbot.handshake import DISCOVERY_URL, HandshakeResult, parse_response, start


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _json_handler(body, status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body)
    return handler


class TestParseResponse:

    def test_only_member_channels_kept(self):
        result = parse_response({
            "ok": True,
            "url": "wss://x",
            "self": {"id": "B1", "name": "bot"},
            "channels": [
                {"id": "C1", "name": "general", "is_member": True},
                {"id": "C2", "name": "random", "is_member": False},
            ],
        })
        assert result.channels == {"C1": "general"}
        assert result.self_id == "B1"
        assert result.self_name == "bot"
        assert result.url == "wss://x"

    def test_users_and_ims_kept_unconditionally(self, rtm_start_body):
        result = parse_response(rtm_start_body)
        assert result.users == {"U1": "alice", "U2": "bob"}
        assert result.ims == {"D1": "U1"}

    def test_missing_arrays_are_empty(self):
        result = parse_response({"ok": True, "url": "wss://x", "self": {"id": "B1", "name": "bot"}})
        assert result.users == {}
        assert result.channels == {}
        assert result.ims == {}

    def test_channel_without_flag_dropped(self):
        result = parse_response({
            "ok": True, "url": "wss://x", "self": {"id": "B1", "name": "bot"},
            "channels": [{"id": "C3", "name": "noflag"}],
        })
        assert result.channels == {}

    @pytest.mark.parametrize("overrides", [
        {"self": "bot"},
        {"users": ["idx"]},
        {"channels": [5]},
        {"ims": [{"user": "U1"}, 3]},
        {"self": ["B1"]},
    ])
    def test_wrong_field_shapes(self, rtm_start_body, overrides):
        body = dict(rtm_start_body, **overrides)
        with pytest.raises(HandshakeError, match="decode") as exc_info:
            parse_response(body)
        assert isinstance(exc_info.value.cause, (AttributeError, TypeError, KeyError))

    def test_not_ok(self):
        with pytest.raises(HandshakeError, match="invalid_auth"):
            parse_response({"ok": False, "error": "invalid_auth"})

    def test_ok_missing(self):
        with pytest.raises(HandshakeError):
            parse_response({"url": "wss://x"})

    def test_ok_without_url(self):
        with pytest.raises(HandshakeError, match="no streaming url"):
            parse_response({"ok": True, "self": {"id": "B1", "name": "bot"}})


class TestStart:

    @pytest.mark.asyncio
    async def test_success(self, rtm_start_body):
        seen = []
        async with _client(_json_handler(rtm_start_body, seen=seen)) as client:
            result = await start("xoxb-secret", client=client)

        assert isinstance(result, HandshakeResult)
        assert result.url == "wss://x"
        assert result.channels == {"C1": "general"}
        assert len(seen) == 1
        req = seen[0]
        assert req.method == "GET"
        assert req.url.params["token"] == "xoxb-secret"
        assert str(req.url).startswith(DISCOVERY_URL)

    @pytest.mark.asyncio
    async def test_custom_url(self, rtm_start_body):
        seen = []
        async with _client(_json_handler(rtm_start_body, seen=seen)) as client:
            await start("t", url="https://example.test/api/rtm.start", client=client)
        assert seen[0].url.host == "example.test"

    @pytest.mark.asyncio
    async def test_invalid_auth(self):
        async with _client(_json_handler({"ok": False, "error": "invalid_auth"})) as client:
            with pytest.raises(HandshakeError) as exc_info:
                await start("bad", client=client)
        assert "invalid_auth" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_non_2xx(self):
        async with _client(_json_handler({"ok": True}, status=503)) as client:
            with pytest.raises(HandshakeError) as exc_info:
                await start("t", client=client)
        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)
        assert exc_info.value.__cause__ is exc_info.value.cause

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(HandshakeError) as exc_info:
                await start("t", client=client)
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>oops</html>")

        async with _client(handler) as client:
            with pytest.raises(HandshakeError, match="decode"):
                await start("t", client=client)

    @pytest.mark.asyncio
    async def test_wrong_self_shape(self):
        body = {"ok": True, "url": "wss://x", "self": "bot"}
        async with _client(_json_handler(body)) as client:
            with pytest.raises(HandshakeError) as exc_info:
                await start("t", client=client)
        assert isinstance(exc_info.value.__cause__, AttributeError)

    @pytest.mark.asyncio
    async def test_body_not_an_object(self):
        async with _client(_json_handler([1, 2, 3])) as client:
            with pytest.raises(HandshakeError, match="decode"):
                await start("t", client=client)

    @pytest.mark.asyncio
    async def test_single_request_no_retry(self):
        seen = []
        async with _client(_json_handler({"ok": False, "error": "ratelimited"}, seen=seen)) as client:
            with pytest.raises(HandshakeError):
                await start("t", client=client)
        assert len(seen) == 1
