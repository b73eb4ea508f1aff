"""Realtime client for MyStiebel heat pumps."""

__version__ = "0.1.0"

from .auth import TokenManager, parse_token_expiry
from .backoff import ReconnectPolicy
from .client import MyStiebelClient
from .config import Credentials, SessionOptions
from .errors import (
    MyStiebelAuthError,
    MyStiebelClientError,
    MyStiebelConnectionError,
    MyStiebelHandshakeError,
    MyStiebelProtocolError,
    MyStiebelResponseError,
    MyStiebelTimeout,
    MyStiebelTransportError,
)
from .http import MyStiebelHttpClient
from .ids import CorrelationIdAllocator
from .models import FieldUpdate, Installation
from .registers import RegisterCatalog, RegisterDefinition, RegisterType
from .session import ProtocolSession
from .state_machine import SessionState, transition

__all__ = [
    "Credentials",
    "CorrelationIdAllocator",
    "FieldUpdate",
    "Installation",
    "MyStiebelAuthError",
    "MyStiebelClient",
    "MyStiebelClientError",
    "MyStiebelConnectionError",
    "MyStiebelHandshakeError",
    "MyStiebelHttpClient",
    "MyStiebelProtocolError",
    "MyStiebelResponseError",
    "MyStiebelTimeout",
    "MyStiebelTransportError",
    "ProtocolSession",
    "ReconnectPolicy",
    "RegisterCatalog",
    "RegisterDefinition",
    "RegisterType",
    "SessionOptions",
    "SessionState",
    "TokenManager",
    "__version__",
    "parse_token_expiry",
    "transition",
]
