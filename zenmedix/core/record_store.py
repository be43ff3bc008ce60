"""Async client for the remote record store.

The record store is a PocketBase-compatible backend exposing named record
collections, password authentication and filter-string queries over HTTP.
"""

import re
from datetime import date, datetime
from typing import Any

import httpx
import structlog

from zenmedix.config import settings
from zenmedix.core.exceptions import NotFoundException, RecordStoreError

logger = structlog.get_logger(__name__)

# Page size used when walking a whole collection
FULL_LIST_BATCH = 500

_PLACEHOLDER = re.compile(r"\{:(\w+)\}")


def quote_filter_value(value: Any) -> str:
    """
    Render a Python value as a filter literal.

    Strings are single-quoted with quotes and backslashes escaped so that
    user input can never terminate the literal.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, datetime):
        value = value.strftime("%Y-%m-%d %H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
    elif isinstance(value, date):
        value = value.isoformat()
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def build_filter(expression: str, **params: Any) -> str:
    """
    Substitute ``{:name}`` placeholders in a filter expression.

    Example:
        build_filter("date = {:date} && status != 'cancelled'", date="2025-01-10")
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in params:
            return match.group(0)
        return quote_filter_value(params[name])

    return _PLACEHOLDER.sub(substitute, expression)


def join_filters(*parts: str | None, operator: str = "&&") -> str | None:
    """Join non-empty filter fragments, returning None when nothing is left."""
    kept = [f"({part})" for part in parts if part]
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0][1:-1]
    return f" {operator} ".join(kept)


class RecordCollection:
    """Operations on one named collection."""

    def __init__(self, store: "RecordStore", name: str):
        """Bind the collection to a store."""
        self.store = store
        self.name = name

    @property
    def _base(self) -> str:
        return f"/api/collections/{self.name}"

    async def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch one page of records.

        Returns:
            Dict with page, perPage, totalItems, totalPages and items
        """
        params: dict[str, Any] = {"page": page, "perPage": per_page}
        if filter:
            params["filter"] = filter
        if sort:
            params["sort"] = sort
        if expand:
            params["expand"] = expand
        return await self.store.request("GET", f"{self._base}/records", params=params)

    async def get_full_list(
        self,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every record matching the filter, walking pages."""
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            result = await self.get_list(
                page=page,
                per_page=FULL_LIST_BATCH,
                filter=filter,
                sort=sort,
                expand=expand,
            )
            batch = result.get("items", [])
            items.extend(batch)
            if len(batch) < FULL_LIST_BATCH:
                return items
            page += 1

    async def get_one(self, record_id: str, expand: str | None = None) -> dict[str, Any]:
        """Fetch a record by id."""
        params = {"expand": expand} if expand else None
        return await self.store.request("GET", f"{self._base}/records/{record_id}", params=params)

    async def get_first(
        self,
        filter: str,
        sort: str | None = None,
        expand: str | None = None,
    ) -> dict[str, Any] | None:
        """Fetch the first record matching a filter, or None."""
        result = await self.get_list(page=1, per_page=1, filter=filter, sort=sort, expand=expand)
        items = result.get("items", [])
        return items[0] if items else None

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a record."""
        return await self.store.request("POST", f"{self._base}/records", json=data)

    async def update(self, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Patch a record."""
        return await self.store.request("PATCH", f"{self._base}/records/{record_id}", json=data)

    async def delete(self, record_id: str) -> bool:
        """Delete a record."""
        await self.store.request("DELETE", f"{self._base}/records/{record_id}")
        return True

    async def auth_with_password(self, identity: str, password: str) -> dict[str, Any]:
        """
        Authenticate a record of an auth collection.

        Returns:
            Dict with ``token`` and ``record``
        """
        return await self.store.request(
            "POST",
            f"{self._base}/auth-with-password",
            json={"identity": identity, "password": password},
        )


class RecordStore:
    """HTTP client for the record store, optionally acting as an authenticated user."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
    ):
        """Initialize with a shared HTTP client and an optional auth token."""
        self.client = client
        self.token = token

    def with_token(self, token: str | None) -> "RecordStore":
        """Return a store sharing this client but authenticated with ``token``."""
        return RecordStore(self.client, token=token)

    def collection(self, name: str) -> RecordCollection:
        """Get a collection handle."""
        return RecordCollection(self, name)

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Perform a request and decode the JSON body.

        Raises:
            NotFoundException: If the record store answers 404
            RecordStoreError: On any other failed call
        """
        headers = {"Authorization": self.token} if self.token else None
        try:
            response = await self.client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("record_store_unreachable", method=method, path=path, error=str(e))
            raise RecordStoreError(f"Record store unreachable: {e!s}") from e

        if response.status_code == 404:
            raise NotFoundException(_error_message(response, "Record not found"))

        if response.status_code >= 400:
            message = _error_message(response, "Record store request failed")
            logger.warning(
                "record_store_request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise RecordStoreError(message, upstream_status=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def health(self) -> bool:
        """Check whether the record store answers its health endpoint."""
        try:
            await self.request("GET", "/api/health")
            return True
        except (RecordStoreError, NotFoundException):
            return False


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return default


# Global HTTP client shared by every store handle
_http_client: httpx.AsyncClient | None = None


def get_record_store() -> RecordStore:
    """
    Get an anonymous record store handle.

    Returns:
        RecordStore backed by the shared HTTP client
    """
    global _http_client

    if _http_client is None:
        _http_client = httpx.AsyncClient(
            base_url=settings.record_store_url,
            timeout=settings.record_store_timeout,
        )

    return RecordStore(_http_client)


async def close_record_store() -> None:
    """Close the shared HTTP client."""
    global _http_client

    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
