from __future__ import annotations

import httpx

from smartmarks.client.models import Bookmark


class StoreError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def normalize_error(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return exc.__class__.__name__


def response_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return f"request failed with status {response.status_code}"


def parse_row(row) -> Bookmark:
    if not isinstance(row, dict):
        raise StoreError(f"malformed bookmark row: {row!r}")
    try:
        return Bookmark.from_dict(row)
    except (KeyError, TypeError, ValueError) as exc:
        raise StoreError(f"malformed bookmark row: {normalize_error(exc)}") from exc


class BookmarkStoreClient:
    """Bookmark routes of the SmartMarks API."""

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(normalize_error(exc)) from exc
        if response.status_code >= 400:
            raise StoreError(response_error(response), response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError(
                f"unreadable response (status {response.status_code})",
                response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise StoreError("unexpected response body", response.status_code)
        return payload

    async def snapshot(self, owner_id: int) -> tuple[list[Bookmark], int | None]:
        """Rows newest first plus the change-feed cursor they are current to."""
        payload = await self._request(
            "GET", "/api/v1/bookmarks", params={"owner": owner_id}
        )
        rows = [parse_row(row) for row in payload.get("items") or []]
        cursor = payload.get("cursor")
        return rows, cursor if isinstance(cursor, int) else None

    async def list_by_owner(self, owner_id: int) -> list[Bookmark]:
        rows, _ = await self.snapshot(owner_id)
        return rows

    async def insert(self, owner_id: int, title: str, url: str) -> Bookmark:
        payload = await self._request(
            "POST",
            "/api/v1/bookmarks",
            json={"user_id": owner_id, "title": title, "url": url},
        )
        return parse_row(payload)

    async def delete_by_id(self, bookmark_id: str) -> None:
        await self._request("DELETE", f"/api/v1/bookmarks/{bookmark_id}")
