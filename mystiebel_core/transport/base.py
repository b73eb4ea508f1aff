"""Transport abstraction consumed by the realtime session."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class MyStiebelWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class MyStiebelWsMessage:
    """Normalized WebSocket message payload."""

    type: MyStiebelWsMessageType
    data: str | dict[str, Any] | None = None


class Transport(Protocol):
    """Message-oriented connection used by :class:`ProtocolSession`.

    Iterating a connected transport yields TEXT messages and ends with a
    single CLOSED or ERROR message once the connection is gone.
    """

    async def connect(
        self,
        url: str,
        *,
        headers: Mapping[str, str],
        ping_interval: int | None,
        timeout: float,
    ) -> None: ...

    async def send_json(self, payload: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[MyStiebelWsMessage]: ...
