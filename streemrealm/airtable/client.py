"""Airtable REST client.

Thin async gateway over the Airtable v0 API: paginated listing, record
create/update/get, and classification of HTTP outcomes into the error
taxonomy in :mod:`streemrealm.airtable.errors`. No call is ever retried.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from streemrealm.airtable.errors import (
    AirtableAPIError,
    AirtableConfigError,
    AirtableDecodingError,
    AirtableNetworkError,
    AirtableNotFoundError,
    AirtableRateLimitedError,
    AirtableUnauthorizedError,
)
from streemrealm.config import AirtableConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SortSpec:
    """One sort key for a list query."""

    field: str
    direction: str = "asc"  # asc or desc


class AirtableClient:
    """Client for one Airtable base.

    Usage:
        async with AirtableClient(api_key, base_id) as client:
            zones = await client.list_all("Zones", sort=[SortSpec("Zone_Number")])
    """

    def __init__(
        self,
        api_key: str,
        base_id: str,
        base_url: str = "https://api.airtable.com/v0",
        *,
        timeout_seconds: float = 30.0,
        list_timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise AirtableConfigError("Airtable API key is not configured")
        if not base_id:
            raise AirtableConfigError("Airtable base id is not configured")
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise AirtableConfigError(f"Invalid Airtable base URL: {base_url!r}")

        self.base_id = base_id
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.list_timeout_seconds = list_timeout_seconds

        self.client = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    @classmethod
    def from_config(
        cls, config: AirtableConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> AirtableClient:
        return cls(
            config.api_key,
            config.base_id,
            config.base_url,
            timeout_seconds=config.timeout_seconds,
            list_timeout_seconds=config.list_timeout_seconds,
            transport=transport,
        )

    def _table_url(self, table: str, record_id: str | None = None) -> str:
        url = f"{self.base_url}/{self.base_id}/{quote(table, safe='')}"
        if record_id:
            url += f"/{quote(record_id, safe='')}"
        return url

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send one request and return the parsed JSON body of a 2xx response."""
        logger.debug("airtable_request: %s %s", method, url)
        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                json=json,
                timeout=timeout if timeout is not None else self.timeout_seconds,
            )
        except httpx.TransportError as exc:
            logger.warning("airtable_network_error: %s %s: %s", method, url, exc)
            raise AirtableNetworkError(exc) from exc

        status = response.status_code
        if 200 <= status < 300:
            try:
                return response.json()
            except ValueError as exc:
                raise AirtableDecodingError(f"invalid JSON body ({exc})") from exc

        logger.warning("airtable_http_error: %s %s status=%s", method, url, status)
        if status == 401:
            raise AirtableUnauthorizedError()
        if status == 404:
            raise AirtableNotFoundError()
        if status == 429:
            raise AirtableRateLimitedError()
        raise AirtableAPIError(_error_message(response), status_code=status)

    async def list_all(
        self,
        table: str,
        filter_formula: str | None = None,
        sort: Sequence[SortSpec] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every record of a table, following offset tokens to the end.

        Pages are concatenated in the order the server returns them. A failure
        on any page aborts the whole listing.

        Args:
            table: Table name (e.g. "Zones")
            filter_formula: Optional Airtable filterByFormula expression
            sort: Optional sort keys, applied in order

        Returns:
            Raw records ({"id", "fields", "createdTime"})
        """
        base_params: list[tuple[str, str]] = []
        if filter_formula:
            base_params.append(("filterByFormula", filter_formula))
        for index, spec in enumerate(sort or ()):
            base_params.append((f"sort[{index}][field]", spec.field))
            base_params.append((f"sort[{index}][direction]", spec.direction))

        url = self._table_url(table)
        records: list[dict[str, Any]] = []
        offset: str | None = None
        pages = 0

        while True:
            params = list(base_params)
            if offset:
                params.append(("offset", offset))

            body = await self._request(
                "GET", url, params=params, timeout=self.list_timeout_seconds
            )
            page_records, offset = _parse_page(body)
            records.extend(page_records)
            pages += 1

            if not offset:
                break

        logger.debug("airtable_list_complete: %s records=%s pages=%s", table, len(records), pages)
        return records

    async def get_record(self, table: str, record_id: str) -> dict[str, Any]:
        body = await self._request("GET", self._table_url(table, record_id))
        return _parse_record(body)

    async def create_record(self, table: str, fields: dict[str, Any]) -> dict[str, Any]:
        """POST a new record and return the created record."""
        body = await self._request("POST", self._table_url(table), json={"fields": fields})
        return _parse_record(body)

    async def update_record(
        self, table: str, record_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """PATCH the given fields of an existing record."""
        body = await self._request(
            "PATCH", self._table_url(table, record_id), json={"fields": fields}
        )
        return _parse_record(body)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> AirtableClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _error_message(response: httpx.Response) -> str:
    """Pull {"error": {"message": ...}} out of an error body, else the status."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return f"HTTP {response.status_code}"


def _parse_record(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise AirtableDecodingError("expected a record object")
    if not isinstance(body.get("id"), str):
        raise AirtableDecodingError("record is missing 'id'")
    if not isinstance(body.get("fields", {}), dict):
        raise AirtableDecodingError("record 'fields' is not an object")
    body.setdefault("fields", {})
    return body


def _parse_page(body: Any) -> tuple[list[dict[str, Any]], str | None]:
    if not isinstance(body, dict) or not isinstance(body.get("records"), list):
        raise AirtableDecodingError("expected {'records': [...]} list response")
    records = [_parse_record(record) for record in body["records"]]
    offset = body.get("offset")
    if offset is not None and not isinstance(offset, str):
        raise AirtableDecodingError("'offset' is not a string")
    return records, offset
