"""Endpoints, client identification and timing defaults for MyStiebel."""

from __future__ import annotations

from typing import Final

AUTH_BASE_URL: Final = "https://auth.mystiebel.com"
SERVICE_BASE_URL: Final = "https://serviceapi.mystiebel.com"
WS_URL: Final = "wss://serviceapi.mystiebel.com/ws/v1"

LOGIN_PATH: Final = "/api/v1/Jwt/login"
INSTALLATIONS_PATH: Final = "/api/v1/InstallationsInfo/own"

# The service only accepts requests that look like the mobile app.
APP_NAME: Final = "MyStiebelApp"
APP_VERSION: Final = "Android_2.3.0"
USER_AGENT: Final = f"{APP_NAME}/2.3.0 Dalvik/2.1.0"

JSONRPC_VERSION: Final = "2.0"

# Seconds
WEBSOCKET_PING_INTERVAL: Final = 30
WEBSOCKET_CONNECT_TIMEOUT: Final = 15.0
RECONNECT_INITIAL_DELAY: Final = 5
RECONNECT_MAX_DELAY: Final = 300
TOKEN_REFRESH_MARGIN: Final = 300
HTTP_TIMEOUT: Final = 20

# Correlation id ranges (inclusive)
MSG_ID_MIN: Final = 1_000_000
MSG_ID_MAX: Final = 9_999_999
MSG_ID_LONG_MIN: Final = 1_000_000_000
MSG_ID_LONG_MAX: Final = 9_999_999_999
LOGIN_MSG_ID: Final = 1


def client_headers() -> dict[str, str]:
    """Return the identification headers sent with every request."""
    return {
        "X-SC-ClientApp-Name": APP_NAME,
        "X-SC-ClientApp-Version": APP_VERSION,
        "User-Agent": USER_AGENT,
    }
