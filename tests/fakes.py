import asyncio
import itertools
from datetime import datetime, timedelta, timezone

from smartmarks.client.models import Bookmark, Identity
from smartmarks.client.store import StoreError

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeStore:
    """In-memory stand-in for BookmarkStoreClient.

    ``gate`` holds delete responses until the test releases it. Ids in
    ``failing_ids`` are refused without waiting on the gate.
    """

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.calls = []
        self.insert_error = None
        self.delete_error = None
        self.list_error = None
        self.gate = None
        self.failing_ids = set()
        self.cursor = None
        self._ids = itertools.count(1)

    async def list_by_owner(self, owner_id):
        self.calls.append(("list", owner_id))
        if self.list_error:
            raise StoreError(self.list_error)
        rows = [row for row in self.rows if row.user_id == owner_id]
        return sorted(rows, key=lambda row: row.created_at, reverse=True)

    async def snapshot(self, owner_id):
        return await self.list_by_owner(owner_id), self.cursor

    async def insert(self, owner_id, title, url):
        self.calls.append(("insert", owner_id, title, url))
        if self.insert_error:
            raise StoreError(self.insert_error)
        index = next(self._ids)
        row = Bookmark(
            id=f"generated-{index}",
            user_id=owner_id,
            title=title,
            url=url,
            created_at=BASE_TIME + timedelta(days=index),
        )
        self.rows.append(row)
        return row

    async def delete_by_id(self, bookmark_id):
        self.calls.append(("delete", bookmark_id))
        if bookmark_id in self.failing_ids:
            raise StoreError(f"could not delete {bookmark_id}", 500)
        if self.gate is not None:
            await self.gate.wait()
        if self.delete_error:
            raise StoreError(self.delete_error, 403)
        self.rows = [row for row in self.rows if row.id != bookmark_id]


class FakeIdentity:
    def __init__(self, user=Identity(id=1, username="u1")):
        self.user = user
        self.listeners = []

    async def get_user(self):
        return self.user

    def on_auth_state_change(self, listener):
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    def emit(self, event, user):
        self.user = user
        for listener in list(self.listeners):
            listener(event, user)


class FakeFeed:
    def __init__(self, owner_id, on_insert, on_delete, on_status, since=None):
        self.owner_id = owner_id
        self.since = since
        self.on_insert = on_insert
        self.on_delete = on_delete
        self.on_status = on_status
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    async def stop(self):
        self.stopped = True
        self.on_status("CLOSED")


def bookmark(index, user_id=1):
    return Bookmark(
        id=f"b{index}",
        user_id=user_id,
        title=f"Bookmark {index}",
        url=f"https://example{index}.com",
        created_at=BASE_TIME + timedelta(minutes=index),
    )


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)
