"""WebSocket client wrapper for the MyStiebel realtime endpoint."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Mapping
from typing import Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from ..errors import MyStiebelConnectionError, MyStiebelProtocolError
from .base import MyStiebelWsMessage, MyStiebelWsMessageType
from .ws import connect_websocket


class MyStiebelWsClient:
    """Wrapper around the websockets library implementing :class:`Transport`."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        url: str,
        *,
        headers: Mapping[str, str],
        ping_interval: int | None = 30,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the realtime endpoint."""
        self._ws = await connect_websocket(
            url,
            headers=headers,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload to the websocket."""
        if self._ws is None:
            raise MyStiebelConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(json.dumps(payload))
        except ConnectionClosed as err:
            raise MyStiebelConnectionError("WebSocket closed while sending") from err

    def __aiter__(self) -> AsyncIterator[MyStiebelWsMessage]:
        if self._ws is None:
            raise MyStiebelConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[MyStiebelWsMessage]:
        if self._ws is None:
            raise MyStiebelConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield MyStiebelWsMessage(type=MyStiebelWsMessageType.CLOSED)
        except Exception:
            yield MyStiebelWsMessage(type=MyStiebelWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield MyStiebelWsMessage(type=MyStiebelWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> MyStiebelWsMessage | None:
        """Normalize websocket frames; binary frames are not used by the service."""
        if isinstance(msg, bytes):
            try:
                return MyStiebelWsMessage(MyStiebelWsMessageType.TEXT, msg.decode("utf-8"))
            except UnicodeDecodeError:
                return None
        if isinstance(msg, str):
            return MyStiebelWsMessage(MyStiebelWsMessageType.TEXT, msg)
        return None

    @staticmethod
    def decode_json(message: MyStiebelWsMessage) -> dict[str, Any]:
        """Decode a TEXT message payload into JSON."""
        if message.type is not MyStiebelWsMessageType.TEXT:
            raise MyStiebelProtocolError("Only TEXT messages can be decoded")
        if isinstance(message.data, dict):
            return message.data
        if not isinstance(message.data, str):
            raise MyStiebelProtocolError("Message data is not a string")
        try:
            result = json.loads(message.data)
        except ValueError as err:
            raise MyStiebelProtocolError(f"Invalid JSON frame: {err}") from err
        if not isinstance(result, dict):
            raise MyStiebelProtocolError("Frame is not a JSON object")
        return result
