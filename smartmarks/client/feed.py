from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable

import httpx

from smartmarks.client.live_status import (
    ACK_CHANNEL_ERROR,
    ACK_CLOSED,
    ACK_SUBSCRIBED,
    ACK_TIMED_OUT,
)
from smartmarks.client.models import Bookmark
from smartmarks.client.store import (
    StoreError,
    normalize_error,
    parse_row,
    response_error,
)
from smartmarks.services.feed import SUBSCRIPTION_HEADER

logger = logging.getLogger(__name__)


def _as_cursor(value, default: int) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else default


class FeedError(Exception):
    def __init__(self, message: str, ack: str = ACK_CHANNEL_ERROR):
        super().__init__(message)
        self.ack = ack


class ChangeFeedSubscription:
    """Pull-based change feed for one owner.

    The handshake result and any later failure are reported through
    ``on_status``; events are dispatched to ``on_insert`` / ``on_delete``
    on the event loop that called :meth:`start`.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        owner_id: int,
        on_insert: Callable[[Bookmark], None],
        on_delete: Callable[[str], None],
        on_status: Callable[[str], None],
        poll_interval: float = 2.0,
        client_id: str | None = None,
        since: int | None = None,
    ):
        self.http = http
        self.owner_id = owner_id
        self.on_insert = on_insert
        self.on_delete = on_delete
        self.on_status = on_status
        self.poll_interval = poll_interval
        self.client_id = client_id or f"session-{uuid.uuid4().hex[:12]}"
        self.since = since
        self.cursor = 0
        self.acknowledged = 0
        self._token: str | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._run(), name=f"change-feed-{self.client_id}"
            )
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.on_status(ACK_CLOSED)

    async def _run(self) -> None:
        try:
            await self.subscribe()
        except FeedError as exc:
            logger.warning("Change feed subscription failed: %s", exc)
            self.on_status(exc.ack)
            return
        self.on_status(ACK_SUBSCRIBED)

        while True:
            try:
                await self.poll_once()
            except FeedError as exc:
                logger.warning("Change feed stopped: %s", exc)
                self.on_status(exc.ack)
                return
            await asyncio.sleep(self.poll_interval)

    async def _call(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise FeedError(normalize_error(exc), ACK_TIMED_OUT) from exc
        except httpx.HTTPError as exc:
            raise FeedError(normalize_error(exc)) from exc
        if response.status_code >= 400:
            raise FeedError(response_error(response))
        try:
            payload = response.json()
        except ValueError as exc:
            raise FeedError(
                f"unreadable feed response (status {response.status_code})"
            ) from exc
        if not isinstance(payload, dict):
            raise FeedError("unexpected feed response")
        return payload

    async def subscribe(self) -> None:
        payload = await self._call(
            "POST", "/api/v1/feed/subscribe", json={"client_id": self.client_id}
        )
        if not payload.get("subscription"):
            raise FeedError("subscription token missing")
        self._token = payload["subscription"]
        self.acknowledged = _as_cursor(payload.get("acknowledged"), 0)
        if self.since is not None:
            self.cursor = self.since
        else:
            self.cursor = _as_cursor(payload.get("cursor"), 0)

    async def poll_once(self) -> int:
        """Drain pending events and return how many were dispatched."""
        dispatched = 0
        while True:
            payload = await self._call(
                "GET",
                "/api/v1/feed/pull",
                params={"since": self.cursor},
                headers={SUBSCRIPTION_HEADER: self._token or ""},
            )
            events = payload.get("events") or []
            for event in events:
                if isinstance(event, dict):
                    self._dispatch(event)
                else:
                    logger.warning("Skipping malformed change event: %r", event)
            dispatched += len(events)
            self.cursor = _as_cursor(payload.get("cursor"), self.cursor)
            if events:
                await self._call(
                    "POST",
                    "/api/v1/feed/ack",
                    json={"client_id": self.client_id, "cursor": self.cursor},
                )
            if not payload.get("has_more"):
                return dispatched

    def _dispatch(self, event: dict) -> None:
        kind = event.get("kind")
        if kind == "insert":
            row = event.get("row") or {}
            if not isinstance(row, dict) or row.get("user_id") != self.owner_id:
                return
            try:
                bookmark = parse_row(row)
            except StoreError as exc:
                logger.warning("Skipping malformed insert event: %s", exc)
                return
            self.on_insert(bookmark)
        elif kind == "delete" and event.get("id"):
            self.on_delete(str(event["id"]))
