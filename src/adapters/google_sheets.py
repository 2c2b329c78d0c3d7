"""Google Sheets keyword source adapter.

Reads ``[keyword, reply]`` rows with the Sheets v4 ``values.get`` endpoint.
Either an API key (sheet shared by link) or OAuth credentials are used; an
access token is renewed from the refresh token when it expires.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from core.errors import ConfigError, FetchError

LOGGER = logging.getLogger(__name__)

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_RANGE = "Sheet1!A:B"


def _google_error_message(response: httpx.Response) -> str:
    """Build readable error text from a Google error payload."""

    try:
        payload = response.json()
    except (json.JSONDecodeError, ValueError):
        payload = {}
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        message = str(error.get("message", "")).strip()
        if message:
            return f"Google API error (HTTP {response.status_code}): {message}"
    if isinstance(error, str) and error.strip():
        description = str(payload.get("error_description", "")).strip()
        detail = f"{error.strip()} {description}".strip()
        return f"Google API error (HTTP {response.status_code}): {detail}"
    return f"HTTP {response.status_code}"


class GoogleSheetsSource:
    """KeywordSourcePort implementation backed by a Google Sheet."""

    def __init__(
        self,
        spreadsheet_id: str,
        range_a1: str = DEFAULT_RANGE,
        api_key: str = "",
        access_token: str = "",
        client_id: str = "",
        client_secret: str = "",
        refresh_token: str = "",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not spreadsheet_id:
            raise ConfigError("A spreadsheet id is required")
        self._spreadsheet_id = spreadsheet_id
        self._range = range_a1 or DEFAULT_RANGE
        self._api_key = api_key
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._timeout = timeout
        self._transport = transport

        self._cached_token = access_token
        # A configured access token may be stale; refresh on first use when we can.
        self._token_expiry: Optional[datetime] = datetime.now(timezone.utc) if self._can_refresh() else None

        if not (self._api_key or self._cached_token or self._can_refresh()):
            raise ConfigError(
                "Google credentials missing: set GOOGLE_API_KEY, GOOGLE_ACCESS_TOKEN, "
                "or GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET/GOOGLE_REFRESH_TOKEN"
            )

    def _can_refresh(self) -> bool:
        return bool(self._client_id and self._client_secret and self._refresh_token)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _values_url(self) -> str:
        return f"{SHEETS_API}/{quote(self._spreadsheet_id, safe='')}/values/{quote(self._range, safe='')}"

    async def _ensure_token(self, client: httpx.AsyncClient, force_refresh: bool = False) -> Optional[str]:
        """Return a bearer token, or None when only an API key is configured."""

        now = datetime.now(timezone.utc)
        token_fresh = self._token_expiry is None or self._token_expiry > now + timedelta(seconds=30)
        if not force_refresh and self._cached_token and token_fresh:
            return self._cached_token
        if not self._can_refresh():
            return self._cached_token or None

        response = await client.post(
            TOKEN_URL,
            data={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": self._refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if response.status_code != 200:
            raise FetchError(f"Token refresh failed: {_google_error_message(response)}")
        data = response.json()
        token = data.get("access_token", "")
        if not token:
            raise FetchError("Token refresh failed: no access_token")
        expires_in = int(data.get("expires_in", 3600))
        self._cached_token = token
        self._token_expiry = now + timedelta(seconds=max(60, expires_in - 30))
        LOGGER.debug("Google access token refreshed")
        return token

    async def _get_values(self, client: httpx.AsyncClient) -> dict[str, Any]:
        params = {"majorDimension": "ROWS"}
        if self._api_key:
            params["key"] = self._api_key

        token = await self._ensure_token(client)
        for attempt in range(2):
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            response = await client.get(self._values_url(), params=params, headers=headers)
            if response.status_code == 401 and attempt == 0 and self._can_refresh():
                token = await self._ensure_token(client, force_refresh=True)
                continue
            if response.status_code >= 400:
                raise FetchError(_google_error_message(response))
            try:
                payload = response.json()
            except (json.JSONDecodeError, ValueError) as e:
                raise FetchError("Sheets API returned a non-JSON body") from e
            if not isinstance(payload, dict):
                raise FetchError("Sheets API returned an unexpected payload")
            return payload
        raise FetchError("Sheets API rejected the refreshed access token")

    async def fetch_rows(self) -> List[List[str]]:
        """Return the rows of the configured range; cells are strings."""

        try:
            async with self._client() as client:
                payload = await self._get_values(client)
        except httpx.HTTPError as e:
            raise FetchError(f"Sheets request failed: {e}") from e

        values = payload.get("values") or []
        if not isinstance(values, list):
            raise FetchError("Sheets API returned malformed values")
        rows = [[str(cell) for cell in row] for row in values if isinstance(row, list)]
        LOGGER.debug("Fetched %s rows from %s", len(rows), payload.get("range", self._range))
        return rows
