"""Access-token lifecycle for the MyStiebel service.

The service issues JWTs from its login endpoint. :class:`TokenManager` keeps
the current token and its expiry, re-authenticates shortly before the token
runs out and makes sure concurrent callers share one login request.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp

from .config import Credentials
from .const import AUTH_BASE_URL, HTTP_TIMEOUT, LOGIN_PATH, TOKEN_REFRESH_MARGIN, client_headers
from .errors import MyStiebelAuthError

_LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def parse_token_expiry(token: str) -> datetime | None:
    """Return the expiry encoded in the ``exp`` claim of a JWT.

    Only the payload segment is decoded; the signature is not verified.
    Returns None when the token is malformed or carries no usable claim.
    """
    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        return None
    segment = parts[1]
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        payload = json.loads(raw)
    except (binascii.Error, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)) or not exp:
        return None
    try:
        return datetime.fromtimestamp(exp, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def _coerce_expiry(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        expiry = value
    else:
        try:
            expiry = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            _LOGGER.warning("Ignoring unparsable cached token expiry: %s", value)
            return None
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=UTC)
    return expiry


class TokenManager:
    """Own the credentials and the bearer token derived from them.

    Usage:
        tokens = TokenManager(http_session, Credentials("me", "secret", "uuid"))
        await tokens.ensure_valid()
        headers = {"Authorization": f"Bearer {tokens.token}"}
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        credentials: Credentials,
        *,
        cached_token: str | None = None,
        cached_token_expiry: str | datetime | None = None,
        auth_base_url: str = AUTH_BASE_URL,
        refresh_margin: float = TOKEN_REFRESH_MARGIN,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the manager.

        Args:
            session: Shared aiohttp session used for the login call
            credentials: Account credentials
            cached_token: Token persisted by a previous run
            cached_token_expiry: Expiry of ``cached_token`` (ISO-8601 or datetime)
            auth_base_url: Base URL of the authentication service
            refresh_margin: Seconds before expiry at which a token is renewed
            now: Clock returning an aware UTC datetime
        """
        self._session = session
        self._credentials = credentials
        self._auth_base_url = auth_base_url.rstrip("/")
        self._refresh_margin = refresh_margin
        self._now = now

        self._token: str | None = None
        self._expiry: datetime | None = None
        self._login_task: asyncio.Task[None] | None = None

        expiry = _coerce_expiry(cached_token_expiry)
        if cached_token and expiry is not None:
            self._token = cached_token
            self._expiry = expiry

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def token(self) -> str | None:
        """Last successfully obtained token."""
        return self._token

    @property
    def expiry(self) -> datetime | None:
        """Expiry of :attr:`token`."""
        return self._expiry

    def get_token(self) -> str | None:
        return self._token

    def get_expiry(self) -> datetime | None:
        return self._expiry

    def needs_refresh(self) -> bool:
        """Return True when the cached token is absent or about to expire."""
        if self._token is None or self._expiry is None:
            return True
        remaining = (self._expiry - self._now()).total_seconds()
        return remaining <= self._refresh_margin

    async def ensure_valid(self) -> None:
        """Make sure a usable token is cached, logging in when required.

        Raises:
            MyStiebelAuthError: If a required login fails
        """
        if self._token is None or self._expiry is None:
            _LOGGER.debug("No token cached, authenticating")
            await self.authenticate()
            return

        if self.needs_refresh():
            _LOGGER.debug("Token expires at %s, re-authenticating", self._expiry.isoformat())
            await self.authenticate()
            return

        _LOGGER.debug("Token is valid until %s", self._expiry.isoformat())

    async def authenticate(self) -> None:
        """Log in and replace the cached token.

        Overlapping calls join the login already in flight and observe its
        outcome, so at most one login request is outstanding at a time.

        Raises:
            MyStiebelAuthError: If the login fails or yields no usable token
        """
        task = self._login_task
        if task is None:
            task = asyncio.create_task(self._login())
            self._login_task = task
            task.add_done_callback(self._clear_login_task)
        else:
            _LOGGER.debug("Joining login already in flight")
        await asyncio.shield(task)

    def _clear_login_task(self, task: asyncio.Task[None]) -> None:
        if self._login_task is task:
            self._login_task = None
        # Callers may have been cancelled while the login kept running.
        if not task.cancelled():
            task.exception()

    async def _login(self) -> None:
        url = f"{self._auth_base_url}{LOGIN_PATH}"
        headers = {
            **client_headers(),
            "Content-Type": "application/json; charset=utf-8",
            "Accept-Encoding": "gzip",
        }
        payload = {
            "userName": self._credentials.username,
            "password": self._credentials.password,
            "clientId": self._credentials.client_id,
            "rememberMe": True,
        }

        try:
            async with self._session.post(
                url,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=HTTP_TIMEOUT),
            ) as resp:
                if resp.status != 200:
                    raise MyStiebelAuthError(
                        f"Authentication failed with status {resp.status}"
                    )
                data: Any = await resp.json(content_type=None)
        except TimeoutError as err:
            raise MyStiebelAuthError("Authentication request timed out") from err
        except aiohttp.ClientError as err:
            raise MyStiebelAuthError(f"Authentication request failed: {err}") from err
        except ValueError as err:
            raise MyStiebelAuthError("Authentication response is not valid JSON") from err

        token = data.get("token") if isinstance(data, dict) else None
        if not token or not isinstance(token, str):
            raise MyStiebelAuthError("Authentication succeeded but no token was received")

        expiry = parse_token_expiry(token)
        if expiry is None:
            raise MyStiebelAuthError(
                "Authentication succeeded but token expiry could not be determined"
            )

        self._token = token
        self._expiry = expiry
        _LOGGER.debug("Authentication successful, token valid until %s", expiry.isoformat())
