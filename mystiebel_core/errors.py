"""Client error types for MyStiebel service interactions."""

from __future__ import annotations


class MyStiebelClientError(Exception):
    """Base error for MyStiebel client failures."""


class MyStiebelAuthError(MyStiebelClientError):
    """Login failed or did not yield a usable token."""


class MyStiebelTransportError(MyStiebelClientError):
    """Realtime transport failure (connect, send or receive)."""


class MyStiebelTimeout(MyStiebelTransportError):
    """Timeout while communicating with the service."""


class MyStiebelConnectionError(MyStiebelTransportError):
    """Network connection to the service failed."""


class MyStiebelHandshakeError(MyStiebelTransportError):
    """WebSocket handshake failed."""


class MyStiebelProtocolError(MyStiebelClientError):
    """Inbound frame is malformed or unexpected."""


class MyStiebelResponseError(MyStiebelClientError):
    """HTTP response error from the service."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
