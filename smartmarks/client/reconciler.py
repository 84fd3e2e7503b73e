"""In-memory bookmark list for one open session.

Three sources feed the list: the snapshot fetched when the session opens,
rows the user just created or removed, and change-feed notifications that
may echo those same rows back later or come from another session of the
same user. Identifiers are the only thing used to tell them apart, so the
list never depends on the order in which the sources arrive.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable

from smartmarks.client.models import Bookmark

Listener = Callable[[list[Bookmark]], None]


class ListReconciler:
    def __init__(self) -> None:
        self._items: list[Bookmark] = []
        self._ids: set[str] = set()
        self._listeners: list[Listener] = []
        self._discarded = False

    @property
    def bookmarks(self) -> list[Bookmark]:
        """Current view, newest first."""
        return list(self._items)

    @property
    def discarded(self) -> bool:
        return self._discarded

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, bookmark_id: object) -> bool:
        return bookmark_id in self._ids

    def seed(self, snapshot: Iterable[Bookmark]) -> None:
        """Replace the view with a snapshot already ordered newest first."""
        if self._discarded:
            return
        items: list[Bookmark] = []
        ids: set[str] = set()
        for bookmark in snapshot:
            if bookmark.id in ids:
                continue
            ids.add(bookmark.id)
            items.append(bookmark)
        self._items = items
        self._ids = ids
        self._notify()

    def apply_insert(self, bookmark: Bookmark) -> bool:
        """Prepend ``bookmark`` unless its identifier is already present.

        Returns True when the view changed.
        """
        if self._discarded or bookmark.id in self._ids:
            return False
        self._items.insert(0, bookmark)
        self._ids.add(bookmark.id)
        self._notify()
        return True

    def apply_delete(self, bookmark_id: str) -> bool:
        if self._discarded or bookmark_id not in self._ids:
            return False
        self._items = [item for item in self._items if item.id != bookmark_id]
        self._ids.discard(bookmark_id)
        self._notify()
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def discard(self) -> None:
        self._discarded = True
        self._listeners.clear()

    def _notify(self) -> None:
        snapshot = self.bookmarks
        for listener in list(self._listeners):
            listener(snapshot)
