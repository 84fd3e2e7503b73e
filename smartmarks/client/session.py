from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

import httpx

from smartmarks.client.feed import ChangeFeedSubscription
from smartmarks.client.identity import SIGNED_IN, IdentityClient
from smartmarks.client.live_status import LiveStatusTracker
from smartmarks.client.models import Bookmark, Identity
from smartmarks.client.reconciler import ListReconciler
from smartmarks.client.store import BookmarkStoreClient, StoreError
from smartmarks.client.submitter import SUCCESS_NOTICE_SECONDS, MutationSubmitter
from smartmarks.config import ClientConfig

logger = logging.getLogger(__name__)

FeedFactory = Callable[..., ChangeFeedSubscription]


class BookmarkSession:
    """One open view of the signed-in user's bookmarks."""

    def __init__(
        self,
        store: BookmarkStoreClient,
        identity: IdentityClient,
        feed_factory: FeedFactory,
        success_notice_seconds: float = SUCCESS_NOTICE_SECONDS,
        http: httpx.AsyncClient | None = None,
    ):
        self.store = store
        self.http = http
        self.identity = identity
        self.feed_factory = feed_factory
        self.reconciler = ListReconciler()
        self.live_status = LiveStatusTracker()
        self.submitter = MutationSubmitter(
            self.reconciler,
            store,
            identity.get_user,
            success_notice_seconds=success_notice_seconds,
        )
        self.user: Identity | None = None
        self.feed: ChangeFeedSubscription | None = None
        self.closed = False
        self._unsubscribe_auth: Callable[[], None] | None = None

    @property
    def bookmarks(self) -> list[Bookmark]:
        return self.reconciler.bookmarks

    async def open(self, snapshot: Iterable[Bookmark] | None = None) -> None:
        """Seed the view and start listening for changes.

        A failed snapshot fetch leaves the view empty but still wires up the
        feed, so rows added afterwards keep arriving.
        """
        self.user = await self.identity.get_user()
        since = None
        if snapshot is None:
            snapshot = []
            if self.user is not None:
                try:
                    snapshot, since = await self.store.snapshot(self.user.id)
                except StoreError as exc:
                    logger.warning("Initial bookmark fetch failed: %s", exc)
        self.reconciler.seed(snapshot)

        self._unsubscribe_auth = self.identity.on_auth_state_change(
            self._on_auth_event
        )
        if self.user is not None:
            self._start_feed(self.user, since=since)

    def _on_auth_event(self, event: str, user: Identity | None) -> None:
        if event == SIGNED_IN and user is not None:
            self.user = user
            self._start_feed(user)

    def _start_feed(self, user: Identity, since: int | None = None) -> None:
        if self.closed or self.feed is not None:
            return
        self.feed = self.feed_factory(
            owner_id=user.id,
            since=since,
            on_insert=self.reconciler.apply_insert,
            on_delete=self.reconciler.apply_delete,
            on_status=self.live_status.handle,
        )
        self.feed.start()

    async def add(self, title: str, address: str) -> Bookmark | None:
        return await self.submitter.add(title, address)

    async def delete(self, bookmark_id: str) -> bool:
        return await self.submitter.delete(bookmark_id)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        if self.feed is not None:
            await self.feed.stop()
        self.submitter.close()
        self.reconciler.discard()
        if self.http is not None:
            await self.http.aclose()


def connect(config=ClientConfig, token: str | None = None) -> BookmarkSession:
    """Build a session talking to the API at ``config.BASE_URL``."""
    http = httpx.AsyncClient(base_url=config.BASE_URL, timeout=config.REQUEST_TIMEOUT)
    identity = IdentityClient(http, token=token)

    def feed_factory(**kwargs) -> ChangeFeedSubscription:
        return ChangeFeedSubscription(
            http, poll_interval=config.FEED_POLL_INTERVAL, **kwargs
        )

    return BookmarkSession(
        BookmarkStoreClient(http),
        identity,
        feed_factory,
        success_notice_seconds=config.SUCCESS_NOTICE_SECONDS,
        http=http,
    )


async def watch(session: BookmarkSession, stop: asyncio.Event) -> None:
    """Log every change to the session view until ``stop`` is set."""

    def report(bookmarks: list[Bookmark]) -> None:
        logger.info("%s bookmark(s)", len(bookmarks))
        for bookmark in bookmarks:
            logger.info("  %s  %s", bookmark.title, bookmark.url)

    unsubscribe = session.reconciler.subscribe(report)
    status_unsubscribe = session.live_status.subscribe(
        lambda status: logger.info("Live status: %s", session.live_status.label)
    )
    try:
        report(session.bookmarks)
        await stop.wait()
    finally:
        unsubscribe()
        status_unsubscribe()
