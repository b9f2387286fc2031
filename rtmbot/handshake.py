"""rtm.start handshake — trade the API token for a WebSocket URL and world-state."""

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from .errors import HandshakeError

logger = logging.getLogger("rtmbot.handshake")

DISCOVERY_URL = "https://slack.com/api/rtm.start"


@dataclass(frozen=True)
class HandshakeResult:
    url: str
    self_id: str
    self_name: str
    users: dict[str, str] = field(default_factory=dict)     # user ID -> name
    channels: dict[str, str] = field(default_factory=dict)  # channel ID -> name (member only)
    ims: dict[str, str] = field(default_factory=dict)       # IM ID -> user ID


def parse_response(body: dict) -> HandshakeResult:
    """Turn a decoded rtm.start body into a HandshakeResult.

    Raises:
        HandshakeError: ``ok`` is missing or false, no ``url`` was returned,
            or a field has the wrong shape.
    """
    if body.get("ok") is not True:
        raise HandshakeError(f"connection error, {body.get('error') or 'ok flag missing'}")

    url = body.get("url")
    if not url:
        raise HandshakeError("connection error, response has no streaming url")

    try:
        me = body.get("self") or {}
        self_id = me.get("id", "")
        self_name = me.get("name", "")
        users = {u["id"]: u.get("name", "") for u in body.get("users") or [] if "id" in u}
        channels = {
            c["id"]: c.get("name", "")
            for c in body.get("channels") or []
            if "id" in c and c.get("is_member")
        }
        ims = {im["id"]: im.get("user", "") for im in body.get("ims") or [] if "id" in im}
    except (AttributeError, TypeError, KeyError) as e:
        raise HandshakeError("response decode error", e) from e

    return HandshakeResult(
        url=url,
        self_id=self_id,
        self_name=self_name,
        users=users,
        channels=channels,
        ims=ims,
    )


async def start(
    token: str,
    *,
    url: str = DISCOVERY_URL,
    client: Optional[httpx.AsyncClient] = None,
) -> HandshakeResult:
    """Call rtm.start once. No retry.

    Args:
        token: Slack API token, sent as the ``token`` query parameter.
        url: Discovery endpoint.
        client: Optional preconfigured client (left open for the caller).

    Raises:
        HandshakeError: transport failure, non-2xx status, undecodable body,
            or ``ok`` not true.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=30) as own_client:
                resp = await own_client.get(url, params={"token": token})
        else:
            resp = await client.get(url, params={"token": token})
        resp.raise_for_status()
        body = resp.json()
    except httpx.HTTPError as e:
        raise HandshakeError("api connection error", e) from e
    except ValueError as e:
        raise HandshakeError("response decode error", e) from e

    if not isinstance(body, dict):
        raise HandshakeError(f"response decode error, expected object, got {type(body).__name__}")

    result = parse_response(body)
    logger.info(
        f"rtm.start ok: self={result.self_name} ({result.self_id}), "
        f"{len(result.users)} users, {len(result.channels)} channels, {len(result.ims)} ims"
    )
    return result
