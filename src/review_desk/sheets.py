"""Read the metadata sheet through the Google Sheets values API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional
from urllib.parse import quote

import httpx

from .config import Settings
from .errors import ConfigurationError, SheetsAPIError

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"

TokenProvider = Callable[[], str]


@dataclass
class SheetSnapshot:
    """Header plus data rows for one fetch of the configured range."""

    header: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.header and not self.rows

    @classmethod
    def from_values(cls, values: Optional[List[List[Any]]]) -> "SheetSnapshot":
        """Split a ``values`` grid (first row is the header) into a snapshot."""
        if not values:
            return cls()
        grid = [[("" if cell is None else str(cell)) for cell in row] for row in values]
        return cls(header=grid[0], rows=grid[1:])


def build_range(sheet_name: str, range_part: str) -> str:
    """Quote the sheet name and URL-encode the whole A1 range as one path segment."""
    return quote(f"'{sheet_name}'!{range_part}", safe="")


def service_account_token_provider(credentials_json: str) -> TokenProvider:
    """Return a callable that yields a fresh bearer token for the service account."""
    from google.auth.exceptions import RefreshError
    from google.auth.transport.requests import Request
    from google.oauth2 import service_account

    try:
        info = json.loads(credentials_json)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            "GOOGLE_SHEETS_CREDENTIALS_JSON is not valid JSON."
        ) from exc
    credentials = service_account.Credentials.from_service_account_info(
        info, scopes=[READONLY_SCOPE]
    )

    def _token() -> str:
        if not credentials.valid:
            try:
                credentials.refresh(Request())
            except RefreshError as exc:
                raise ConfigurationError(
                    "Could not obtain a Google access token."
                ) from exc
        if not credentials.token:
            raise ConfigurationError("Could not obtain a Google access token.")
        return credentials.token

    return _token


class SheetsClient:
    """Fetches the configured range; callers decide what to do with the rows."""

    def __init__(
        self,
        settings: Settings,
        *,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        settings.require_sheet_config()
        self.settings = settings
        if token_provider is None:
            if not settings.google_sheets_credentials_json:
                raise ConfigurationError(
                    "Google Sheets credentials missing (GOOGLE_SHEETS_CREDENTIALS_JSON)."
                )
            token_provider = service_account_token_provider(
                settings.google_sheets_credentials_json
            )
        self._token_provider = token_provider
        self._transport = transport

    def values_url(self) -> str:
        encoded = build_range(self.settings.sheet_name, self.settings.sheet_range_part)
        return f"{SHEETS_API_BASE}/{self.settings.sheet_id}/values/{encoded}"

    def fetch(self) -> SheetSnapshot:
        url = self.values_url()
        headers = {
            "Authorization": f"Bearer {self._token_provider()}",
            "Accept": "application/json",
        }
        logger.debug("Fetching sheet values from %s", url)
        with httpx.Client(
            timeout=self.settings.http_timeout_seconds, transport=self._transport
        ) as client:
            response = client.get(url, headers=headers)

        if response.is_error:
            logger.error(
                "Sheets API returned %s %s", response.status_code, response.reason_phrase
            )
            raise SheetsAPIError(
                f"Failed to fetch sheet data from Google API: Status {response.status_code}",
                status_code=response.status_code,
                details=response.text,
            )

        values = response.json().get("values")
        snapshot = SheetSnapshot.from_values(values)
        logger.info("Fetched %d rows from sheet", len(values or []))
        return snapshot
