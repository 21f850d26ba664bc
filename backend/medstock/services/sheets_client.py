"""
Remote row store client: Google Sheets values API over plain HTTP.

Only two operations exist:
- read_range:  GET  {base}/{sheet_id}/values/{Table!A1:B2}?key=...
- write_range: PUT  same URL + valueInputOption=RAW, body {"values": rows}

A PUT overwrites the whole addressed rectangle. There is no patch, no
delete, no transaction and no lock on the other side. No retries here:
callers decide what to do with a failure.
"""
import logging
import re
from typing import Any, Callable, List, Optional, Sequence, Tuple
from urllib.parse import quote

import requests

from medstock.core.config import settings
from medstock.core.exceptions import ConfigurationError, RemoteError, TransportError

logger = logging.getLogger(__name__)

Credentials = Tuple[str, str]  # (api_key, sheet_id)

_A1_CELL = re.compile(r"^([A-Z]+)(\d+)?$")


# ==============================================================================
# A1 RANGE HELPERS
# ==============================================================================

def column_letter(index: int) -> str:
    """1 -> A, 26 -> Z, 27 -> AA."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def column_index(letters: str) -> int:
    """A -> 1, Z -> 26, AA -> 27."""
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def build_range(table: str, cell_range: Optional[str] = None) -> str:
    return f"{table}!{cell_range}" if cell_range else table


def column_span(width: int) -> str:
    """Whole-column range covering ``width`` columns, e.g. 4 -> "A:D"."""
    return f"A:{column_letter(width)}"


def row_range(width: int, row_number: int) -> str:
    """Single-row range, e.g. (4, 7) -> "A7:D7". Rows are 1-based."""
    return f"A{row_number}:{column_letter(width)}{row_number}"


def parse_a1_range(cell_range: str) -> Tuple[int, Optional[int], int, Optional[int]]:
    """
    Parse "A2:D9" / "A:D" / "B5" into (first_col, first_row, last_col, last_row).

    Columns are 1-based indexes; rows are 1-based or None when the range is
    open (whole columns).
    """
    parts = cell_range.upper().split(":")
    if len(parts) == 1:
        parts = parts * 2
    if len(parts) != 2:
        raise ValueError(f"Invalid A1 range: {cell_range!r}")

    bounds = []
    for part in parts:
        match = _A1_CELL.match(part.strip())
        if not match:
            raise ValueError(f"Invalid A1 range: {cell_range!r}")
        col, row = match.groups()
        bounds.append((column_index(col), int(row) if row else None))

    (first_col, first_row), (last_col, last_row) = bounds
    return first_col, first_row, last_col, last_row


# ==============================================================================
# CLIENT
# ==============================================================================

def settings_credentials() -> Credentials:
    return settings.GOOGLE_SHEETS_API_KEY, settings.SHEET_ID


class SheetsClient:
    """
    Thin wrapper around the Sheets values endpoint.

    Credentials are resolved on every call through ``credentials`` so a key
    saved at runtime (settings screen / session store) takes effect without
    rebuilding the client.
    """

    def __init__(
        self,
        credentials: Callable[[], Credentials] = settings_credentials,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.credentials = credentials
        self.base_url = (base_url or settings.SHEETS_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def read_range(self, table: str, cell_range: Optional[str] = None) -> List[List[str]]:
        """Fetch a rectangle. Trailing empty rows/cells are omitted by the API."""
        data = self._request("GET", table, cell_range)
        return data.get("values") or []

    def write_range(self, table: str, cell_range: str, rows: Sequence[Sequence[Any]]) -> dict:
        """Overwrite a rectangle with ``rows``."""
        return self._request("PUT", table, cell_range, [list(row) for row in rows])

    def _request(
        self,
        method: str,
        table: str,
        cell_range: Optional[str],
        values: Optional[List[List[Any]]] = None,
    ) -> dict:
        api_key, sheet_id = self.credentials()
        if not api_key or not sheet_id:
            raise ConfigurationError(
                "Google Sheets API key or Sheet ID not configured. Please set them in Settings."
            )

        full_range = build_range(table, cell_range)
        url = f"{self.base_url}/{sheet_id}/values/{quote(full_range, safe='')}"
        params = {"key": api_key}
        body = None
        if method != "GET":
            params["valueInputOption"] = "RAW"
            body = {"values": values or []}

        logger.debug(f"Sheets {method} {full_range}")
        try:
            response = self.http.request(
                method,
                url,
                params=params,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Sheets {method} {full_range} failed: {type(e).__name__}")
            raise TransportError(f"Could not reach Google Sheets: {e}") from e

        if not response.ok:
            message = self._error_message(response)
            logger.warning(f"Sheets {method} {full_range} -> {response.status_code}: {message}")
            raise RemoteError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError:
            # PUT responses are JSON too, but an empty body is not an error
            return {}

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return f"API Error: {response.status_code}"
