"""Search-backend abstraction and the FOFA asset-search client.

Every backend shares a common interface: ``search(query) -> list[Target]``.
A backend failure aborts the run, so backends raise :class:`SearchError`
instead of returning ``[]``.
"""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from typing import Any

import httpx

from fproxy.scraper.models import Target

SEARCH_PATH = "/api/v1/search/all"
FIELDS = "host,protocol,header,banner"

# Hosts whose pages embed a subscription URL.
BODY_QUERY = 'body="/api/v1/client/subscribe?token="'
# Hosts that answer with a usage header themselves.
HEADER_QUERY = 'header="subscription-userinfo"'


class SearchError(Exception):
    """Raised when the search backend cannot be queried or reports an error."""


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class SearchBackend(ABC):
    """Abstract base class for an asset-search backend."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""

    @abstractmethod
    def search(self, query: str) -> list[Target]:
        """Return the targets matching *query*.

        Raises:
            SearchError: On transport failure or a backend-reported error.
        """


# ---------------------------------------------------------------------------
# FOFA
# ---------------------------------------------------------------------------

def _row_to_target(row: Any) -> Target:
    """Build a :class:`Target` from one ``results`` row.

    FOFA returns a bare string instead of a list when a single field is
    requested, and omits trailing columns it has no data for.
    """
    if isinstance(row, str):
        return Target(host=row)
    if not isinstance(row, (list, tuple)):
        raise SearchError(f"Unexpected FOFA result row: {row!r:.80}")
    cells = ["" if cell is None else str(cell) for cell in row[:4]]
    cells += [""] * (4 - len(cells))
    host, protocol, header, banner = cells
    return Target(host=host, protocol=protocol, header=header, banner=banner)


class FofaBackend(SearchBackend):
    """FOFA ``/api/v1/search/all`` client.

    The query is sent base64-encoded in ``qbase64`` as the API requires.
    """

    def __init__(
        self,
        api_key: str,
        *,
        size: int = 20,
        base_url: str = "https://fofa.info",
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._size = size
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "FOFA"

    def search(self, query: str) -> list[Target]:
        qbase64 = base64.b64encode(query.encode("utf-8")).decode("ascii")
        try:
            with httpx.Client(timeout=self._timeout, verify=False) as client:
                resp = client.get(
                    f"{self._base_url}{SEARCH_PATH}",
                    params={
                        "key": self._api_key,
                        "qbase64": qbase64,
                        "fields": FIELDS,
                        "size": self._size,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise SearchError(f"FOFA request failed: {exc}") from exc

        if not resp.is_success:
            raise SearchError(f"FOFA request failed with status: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise SearchError("FOFA returned a non-JSON response") from exc
        if not isinstance(data, dict):
            raise SearchError("Unexpected FOFA response format")

        if data.get("error"):
            raise SearchError(f"FOFA error: {data.get('errmsg') or 'unknown error'}")

        rows = data.get("results") or []
        if not isinstance(rows, list):
            raise SearchError("Unexpected FOFA results format")

        targets = [_row_to_target(row) for row in rows]
        return [t for t in targets if t.host]
