"""Configuration containers for MyStiebel clients."""

from __future__ import annotations

from dataclasses import dataclass, field

from .const import (
    RECONNECT_INITIAL_DELAY,
    RECONNECT_MAX_DELAY,
    WEBSOCKET_CONNECT_TIMEOUT,
    WEBSOCKET_PING_INTERVAL,
    WS_URL,
)


@dataclass(frozen=True)
class Credentials:
    """Account credentials, fixed for the lifetime of a client."""

    username: str
    password: str = field(repr=False)
    client_id: str

    def __post_init__(self) -> None:
        if not self.username or not self.password or not self.client_id:
            raise ValueError("username, password and client_id are required")


@dataclass(frozen=True)
class SessionOptions:
    """Tunables for the realtime session.

    Attributes:
        reconnect_initial: Backoff floor (seconds).
        reconnect_max: Backoff ceiling (seconds).
        ping_interval: WebSocket keepalive ping interval (seconds).
        connect_timeout: WebSocket open timeout (seconds).
        ws_url: Realtime endpoint.
    """

    reconnect_initial: float = RECONNECT_INITIAL_DELAY
    reconnect_max: float = RECONNECT_MAX_DELAY
    ping_interval: int | None = WEBSOCKET_PING_INTERVAL
    connect_timeout: float = WEBSOCKET_CONNECT_TIMEOUT
    ws_url: str = WS_URL

    def __post_init__(self) -> None:
        if self.reconnect_initial <= 0 or self.reconnect_max <= 0:
            raise ValueError("Reconnect delays must be positive")
        if self.reconnect_initial > self.reconnect_max:
            raise ValueError("reconnect_initial must not exceed reconnect_max")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
