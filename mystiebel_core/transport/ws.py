"""WebSocket helpers for the MyStiebel realtime endpoint."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..const import USER_AGENT
from ..errors import (
    MyStiebelConnectionError,
    MyStiebelHandshakeError,
    MyStiebelTimeout,
)


async def connect_websocket(
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    ping_interval: int | None = 30,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a WebSocket endpoint.

    Args:
        url: Endpoint URL (``wss://...``)
        headers: Extra handshake headers, e.g. the bearer token. The
            user agent is always the app's own.
        ping_interval: Interval for keepalive ping frames
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                additional_headers=dict(headers or {}),
                user_agent_header=USER_AGENT,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise MyStiebelTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise MyStiebelHandshakeError(f"WebSocket handshake failed: {err}") from err
    except (OSError, WebSocketException) as err:
        raise MyStiebelConnectionError(f"WebSocket connection failed: {err}") from err
