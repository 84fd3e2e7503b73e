"""User-initiated adds and deletes with immediate feedback.

Adds are applied to the view as soon as the store returns the created row;
deletes are applied before the request is even sent and are undone on
failure by merging a fresh snapshot back in. That recovery only re-adds
rows: a row removed by another delete still in flight can come back if the
snapshot was taken before that delete landed.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from smartmarks.client.models import Bookmark, Identity
from smartmarks.client.reconciler import ListReconciler
from smartmarks.client.store import BookmarkStoreClient, StoreError
from smartmarks.services.validation import normalize_address, validate_bookmark_input

logger = logging.getLogger(__name__)

SUCCESS_NOTICE_SECONDS = 2.0
SIGN_IN_REQUIRED = "You must be logged in to add bookmarks."


@dataclass
class AddFormState:
    title: str = ""
    address: str = ""
    error: str | None = None
    success: bool = False
    submitting: bool = False


@dataclass
class DeleteState:
    deleting_ids: set[str] = field(default_factory=set)
    error: str | None = None


class MutationSubmitter:
    def __init__(
        self,
        reconciler: ListReconciler,
        store: BookmarkStoreClient,
        current_identity: Callable[[], Awaitable[Identity | None]],
        success_notice_seconds: float = SUCCESS_NOTICE_SECONDS,
    ):
        self.reconciler = reconciler
        self.store = store
        self.current_identity = current_identity
        self.success_notice_seconds = success_notice_seconds
        self.form = AddFormState()
        self.deletes = DeleteState()
        self._success_timer: asyncio.TimerHandle | None = None

    async def add(
        self, title: str | None = None, address: str | None = None
    ) -> Bookmark | None:
        if title is not None:
            self.form.title = title
        if address is not None:
            self.form.address = address
        self.form.error = None

        error = validate_bookmark_input(self.form.title, self.form.address)
        if error:
            self.form.error = error
            return None

        self.form.submitting = True
        try:
            user = await self.current_identity()
            if user is None:
                self.form.error = SIGN_IN_REQUIRED
                return None
            row = await self.store.insert(
                user.id,
                self.form.title.strip(),
                normalize_address(self.form.address),
            )
        except StoreError as exc:
            self.form.error = exc.message
            return None
        finally:
            self.form.submitting = False

        self.reconciler.apply_insert(row)
        self.form.title = ""
        self.form.address = ""
        self._show_success()
        return row

    async def delete(self, bookmark_id: str) -> bool:
        self.deletes.error = None
        self.reconciler.apply_delete(bookmark_id)
        self.deletes.deleting_ids.add(bookmark_id)
        try:
            await self.store.delete_by_id(bookmark_id)
        except StoreError as exc:
            self.deletes.error = f"Failed to delete: {exc.message}"
            await self._restore_from_store()
            return False
        finally:
            self.deletes.deleting_ids.discard(bookmark_id)
        return True

    async def _restore_from_store(self) -> None:
        user = await self.current_identity()
        if user is None:
            return
        try:
            rows = await self.store.list_by_owner(user.id)
        except StoreError as exc:
            logger.warning("Could not restore bookmarks after failed delete: %s", exc)
            return
        for row in rows:
            self.reconciler.apply_insert(row)

    def _show_success(self) -> None:
        self.form.success = True
        if self._success_timer is not None:
            self._success_timer.cancel()
        loop = asyncio.get_running_loop()
        self._success_timer = loop.call_later(
            self.success_notice_seconds, self._clear_success
        )

    def _clear_success(self) -> None:
        self.form.success = False
        self._success_timer = None

    def close(self) -> None:
        if self._success_timer is not None:
            self._success_timer.cancel()
            self._success_timer = None
