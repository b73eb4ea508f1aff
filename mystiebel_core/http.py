"""HTTP client for MyStiebel service endpoints."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from .auth import TokenManager
from .const import HTTP_TIMEOUT, INSTALLATIONS_PATH, SERVICE_BASE_URL, client_headers
from .errors import (
    MyStiebelConnectionError,
    MyStiebelResponseError,
    MyStiebelTimeout,
)
from .models import Installation

_LOGGER = logging.getLogger(__name__)


class MyStiebelHttpClient:
    """HTTP client wrapper for the MyStiebel service API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        tokens: TokenManager,
        *,
        service_base_url: str = SERVICE_BASE_URL,
    ) -> None:
        self._session = session
        self._tokens = tokens
        self._base_url = service_base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _auth_headers(self) -> dict[str, str]:
        headers = {
            **client_headers(),
            "Content-Type": "application/json; charset=utf-8",
            "Accept-Encoding": "gzip",
        }
        token = self._tokens.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def fetch_installations(self) -> dict[str, Any]:
        """Fetch the raw list of installations owned by the account.

        Returns:
            Decoded response body, ``{"items": [...], ...}``

        Raises:
            MyStiebelAuthError: If no valid token can be obtained
            MyStiebelResponseError: If the service returns a non-200 status
            MyStiebelTimeout: If the request times out
            MyStiebelConnectionError: If the network request fails
        """
        await self._tokens.ensure_valid()

        try:
            async with self._session.post(
                self._url(INSTALLATIONS_PATH),
                json={"includeWithPendingUserAccesses": True},
                headers=self._auth_headers(),
                timeout=aiohttp.ClientTimeout(total=HTTP_TIMEOUT),
            ) as resp:
                if resp.status != 200:
                    raise MyStiebelResponseError(
                        resp.status, "Failed to get installations"
                    )
                data: Any = await resp.json(content_type=None)
        except TimeoutError as err:
            raise MyStiebelTimeout("Installations request timed out") from err
        except aiohttp.ClientError as err:
            raise MyStiebelConnectionError("Installations request failed") from err
        except ValueError as err:
            raise MyStiebelResponseError(200, "Installations response is not valid JSON") from err

        if not isinstance(data, dict):
            raise MyStiebelResponseError(200, "Unexpected installations response")
        return data

    async def get_installations(self) -> list[Installation]:
        """Return the installations owned by the account.

        Records without an id are skipped.
        """
        data = await self.fetch_installations()
        installations: list[Installation] = []
        for item in data.get("items") or []:
            try:
                installations.append(Installation.from_dict(item))
            except (TypeError, ValueError, AttributeError) as err:
                _LOGGER.warning("Skipping installation record: %s", err)
        _LOGGER.debug("Found %d installations", len(installations))
        return installations
