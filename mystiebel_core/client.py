"""High-level MyStiebel client.

Combines authentication, installation discovery and the realtime session:

    async with aiohttp.ClientSession() as http:
        client = MyStiebelClient(Credentials("me@example.com", "secret", "uuid"), session=http)
        installation = await client.connect(print)
        await client.set_control("setpoint_comfort", 52)
        ...
        await client.close()

Values reach the callback already converted to their register type and keyed
by register key, e.g. ``{"dome_temperature": 48.5, "compressor": True}``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import aiohttp

from .auth import TokenManager
from .config import Credentials, SessionOptions
from .errors import MyStiebelClientError
from .http import MyStiebelHttpClient
from .models import FieldUpdate, FieldValue, Installation
from .registers import RegisterCatalog, encode_value
from .session import ProtocolSession

_LOGGER = logging.getLogger(__name__)

ValuesCallback = Callable[[dict[str, FieldValue]], Awaitable[None] | None]


class MyStiebelClient:
    """Connect to the first (or a chosen) installation of an account."""

    def __init__(
        self,
        credentials: Credentials,
        *,
        session: aiohttp.ClientSession | None = None,
        options: SessionOptions | None = None,
        catalog: RegisterCatalog | None = None,
        cached_token: str | None = None,
        cached_token_expiry: str | datetime | None = None,
    ) -> None:
        self._credentials = credentials
        self._http_session = session
        self._owns_http_session = session is None
        self._options = options or SessionOptions()
        self._catalog = catalog or RegisterCatalog.essential()
        self._cached_token = cached_token
        self._cached_token_expiry = cached_token_expiry

        self._tokens: TokenManager | None = None
        self._api: MyStiebelHttpClient | None = None
        self._session: ProtocolSession | None = None
        self._installation: Installation | None = None
        self._callback: ValuesCallback | None = None

    @property
    def tokens(self) -> TokenManager:
        """Token manager; available after the first call to :meth:`login`."""
        if self._tokens is None:
            raise MyStiebelClientError("Client is not logged in")
        return self._tokens

    @property
    def installation(self) -> Installation | None:
        return self._installation

    @property
    def session(self) -> ProtocolSession | None:
        return self._session

    @property
    def catalog(self) -> RegisterCatalog:
        return self._catalog

    def _ensure_components(self) -> MyStiebelHttpClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        if self._tokens is None:
            self._tokens = TokenManager(
                self._http_session,
                self._credentials,
                cached_token=self._cached_token,
                cached_token_expiry=self._cached_token_expiry,
            )
        if self._api is None:
            self._api = MyStiebelHttpClient(self._http_session, self._tokens)
        return self._api

    async def login(self) -> None:
        """Make sure a valid token is available.

        Raises:
            MyStiebelAuthError: If the login fails
        """
        self._ensure_components()
        await self.tokens.ensure_valid()

    async def get_installations(self) -> list[Installation]:
        """Return the installations of the account."""
        api = self._ensure_components()
        return await api.get_installations()

    async def connect(
        self,
        callback: ValuesCallback,
        installation_id: str | None = None,
    ) -> Installation:
        """Log in, pick an installation and start the realtime session.

        Args:
            callback: Receives normalized values keyed by register key
            installation_id: Installation to use; the first one when omitted

        Returns:
            The installation the session was started for

        Raises:
            MyStiebelAuthError: If the login fails
            MyStiebelClientError: If no (matching) installation exists or a
                session is already running
        """
        if self._session is not None and not self._session.is_stopped:
            raise MyStiebelClientError("A realtime session is already running")

        await self.login()
        installations = await self.get_installations()
        if not installations:
            raise MyStiebelClientError("No installations found")

        if installation_id is None:
            installation = installations[0]
        else:
            installation = next(
                (item for item in installations if item.id == str(installation_id)), None
            )
            if installation is None:
                raise MyStiebelClientError(f"Installation {installation_id} not found")

        _LOGGER.info("Using installation %s (%s)", installation.id, installation.name)
        self._installation = installation
        self._callback = callback
        self._session = ProtocolSession(
            self.tokens,
            installation.id,
            self._credentials.client_id,
            self._catalog.monitored_registers(),
            self._handle_batch,
            options=self._options,
        )
        await self._session.start()
        return installation

    async def set_control(self, key: str, value: Any) -> bool:
        """Write a control register by key.

        Returns:
            True if the write was sent, False if it was dropped
        """
        definition = self._catalog.by_key(key)
        if definition is None or not definition.writable:
            _LOGGER.warning("No writable register for control %s", key)
            return False
        if self._session is None:
            _LOGGER.debug("Dropping write to %s: not connected", key)
            return False
        return await self._session.set_value(definition.index, encode_value(definition, value))

    async def close(self) -> None:
        """Stop the realtime session and release owned resources."""
        if self._session is not None:
            await self._session.stop()
        if self._owns_http_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._tokens = None
            self._api = None

    async def _handle_batch(self, updates: list[FieldUpdate]) -> None:
        values = self._catalog.normalize(updates)
        if not values or self._callback is None:
            return
        result = self._callback(values)
        if inspect.isawaitable(result):
            await result
