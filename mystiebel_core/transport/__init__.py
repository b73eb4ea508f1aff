"""Transport layer for the MyStiebel realtime session.

Components:
- base: Transport protocol and normalized message types
- ws: WebSocket connection setup
- ws_client: WebSocket message iteration
"""

from .base import MyStiebelWsMessage, MyStiebelWsMessageType, Transport
from .ws import connect_websocket
from .ws_client import MyStiebelWsClient

__all__ = [
    "MyStiebelWsClient",
    "MyStiebelWsMessage",
    "MyStiebelWsMessageType",
    "Transport",
    "connect_websocket",
]
