"""Pytest configuration and fixtures for mystiebel_core tests."""

from __future__ import annotations

import asyncio
import base64
import json
from collections.abc import AsyncIterator, Callable, Mapping
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from mystiebel_core.auth import TokenManager
from mystiebel_core.config import Credentials
from mystiebel_core.errors import MyStiebelConnectionError
from mystiebel_core.transport import MyStiebelWsMessage, MyStiebelWsMessageType

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials("user@example.com", "secret", "client-uuid")


@pytest.fixture
def mock_tokens() -> MagicMock:
    """Token manager that always holds a valid token."""
    tokens = MagicMock(spec=TokenManager)
    tokens.ensure_valid = AsyncMock()
    tokens.token = "jwt-token"
    return tokens


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        text_data: Data to return from text() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data
    if text_data is not None:
        response.text.return_value = text_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def _b64url(data: dict[str, Any]) -> str:
    raw = json.dumps(data).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def make_jwt(payload: dict[str, Any]) -> str:
    """Build an unsigned JWT carrying ``payload``."""
    return f"{_b64url({'alg': 'HS256', 'typ': 'JWT'})}.{_b64url(payload)}.signature"


class FakeTransport:
    """In-memory transport; frames are fed by the test."""

    def __init__(self, *, connect_error: Exception | None = None) -> None:
        self.connect_error = connect_error
        self.sent: list[dict[str, Any]] = []
        self.headers: dict[str, str] = {}
        self.url: str | None = None
        self.connected = False
        self.closed = False
        self._inbox: asyncio.Queue[MyStiebelWsMessage] = asyncio.Queue()

    async def connect(
        self,
        url: str,
        *,
        headers: Mapping[str, str],
        ping_interval: int | None,
        timeout: float,
    ) -> None:
        self.url = url
        self.headers = dict(headers)
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.closed:
            raise MyStiebelConnectionError("WebSocket is not connected")
        self.sent.append(payload)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(MyStiebelWsMessage(MyStiebelWsMessageType.CLOSED))

    def feed(self, payload: dict[str, Any]) -> None:
        self.feed_raw(json.dumps(payload))

    def feed_raw(self, text: str) -> None:
        self._inbox.put_nowait(MyStiebelWsMessage(MyStiebelWsMessageType.TEXT, text))

    def drop(self) -> None:
        """Simulate the server going away."""
        self._inbox.put_nowait(MyStiebelWsMessage(MyStiebelWsMessageType.CLOSED))

    def methods(self) -> list[str | None]:
        return [frame.get("method") for frame in self.sent]

    def __aiter__(self) -> AsyncIterator[MyStiebelWsMessage]:
        return self._iter()

    async def _iter(self) -> AsyncIterator[MyStiebelWsMessage]:
        while True:
            msg = await self._inbox.get()
            yield msg
            if msg.type is not MyStiebelWsMessageType.TEXT:
                return


class TransportFactory:
    """Hands out FakeTransports and remembers them."""

    def __init__(self) -> None:
        self.created: list[FakeTransport] = []
        self.connect_errors: list[Exception | None] = []

    def __call__(self) -> FakeTransport:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        transport = FakeTransport(connect_error=error)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


@pytest.fixture
def transport_factory() -> TransportFactory:
    return TransportFactory()


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0)
