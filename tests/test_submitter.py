import asyncio

from fakes import FakeIdentity, FakeStore, bookmark, settle

from smartmarks.client.reconciler import ListReconciler
from smartmarks.client.submitter import (
    SIGN_IN_REQUIRED,
    SUCCESS_NOTICE_SECONDS,
    MutationSubmitter,
)


def _submitter(store, identity=None, reconciler=None, notice=SUCCESS_NOTICE_SECONDS):
    reconciler = reconciler or ListReconciler()
    identity = identity or FakeIdentity()
    return MutationSubmitter(
        reconciler, store, identity.get_user, success_notice_seconds=notice
    )


def test_success_notice_lasts_two_seconds_by_default():
    assert SUCCESS_NOTICE_SECONDS == 2.0


def test_add_normalizes_and_prepends_store_row():
    async def scenario():
        store = FakeStore()
        reconciler = ListReconciler()
        reconciler.seed([bookmark(1)])
        submitter = _submitter(store, reconciler=reconciler, notice=0.05)

        row = await submitter.add("Docs", "supabase.com/docs")

        assert store.calls == [("insert", 1, "Docs", "https://supabase.com/docs")]
        assert row.id == "generated-1"
        assert reconciler.bookmarks[0] == row
        assert [b.id for b in reconciler.bookmarks] == ["generated-1", "b1"]
        assert submitter.form.title == ""
        assert submitter.form.address == ""
        assert submitter.form.error is None
        assert submitter.form.success is True

        await asyncio.sleep(0.1)
        assert submitter.form.success is False

    asyncio.run(scenario())


def test_add_trims_title():
    async def scenario():
        store = FakeStore()
        submitter = _submitter(store)
        await submitter.add("  Docs  ", "https://example.com")
        submitter.close()
        assert store.calls[0][2] == "Docs"

    asyncio.run(scenario())


def test_add_validation_error_skips_network():
    async def scenario():
        store = FakeStore()
        reconciler = ListReconciler()
        submitter = _submitter(store, reconciler=reconciler)

        assert await submitter.add("", "example.com") is None
        assert submitter.form.error == "Title is required."

        assert await submitter.add("Docs", "ftp://example.com") is None
        assert submitter.form.error == "URL must use http:// or https://."
        assert submitter.form.title == "Docs"
        assert submitter.form.address == "ftp://example.com"

        assert store.calls == []
        assert reconciler.bookmarks == []

    asyncio.run(scenario())


def test_add_without_identity_reports_sign_in_required():
    async def scenario():
        store = FakeStore()
        submitter = _submitter(store, identity=FakeIdentity(user=None))

        assert await submitter.add("Docs", "example.com") is None
        assert submitter.form.error == SIGN_IN_REQUIRED
        assert submitter.form.submitting is False
        assert store.calls == []

    asyncio.run(scenario())


def test_add_store_error_keeps_fields_and_view():
    async def scenario():
        store = FakeStore()
        store.insert_error = "new row violates row-level security policy"
        reconciler = ListReconciler()
        submitter = _submitter(store, reconciler=reconciler)

        assert await submitter.add("Docs", "example.com") is None
        assert submitter.form.error == "new row violates row-level security policy"
        assert submitter.form.title == "Docs"
        assert submitter.form.address == "example.com"
        assert submitter.form.success is False
        assert reconciler.bookmarks == []

    asyncio.run(scenario())


def test_add_uses_form_fields_when_arguments_omitted():
    async def scenario():
        store = FakeStore()
        submitter = _submitter(store)
        submitter.form.title = "Docs"
        submitter.form.address = "example.com"
        row = await submitter.add()
        submitter.close()
        assert row.url == "https://example.com"

    asyncio.run(scenario())


def test_delete_removes_row_before_store_responds():
    async def scenario():
        store = FakeStore([bookmark(1), bookmark(2)])
        store.gate = asyncio.Event()
        reconciler = ListReconciler()
        reconciler.seed(await store.list_by_owner(1))
        submitter = _submitter(store, reconciler=reconciler)

        task = asyncio.create_task(submitter.delete("b1"))
        await settle()

        assert [b.id for b in reconciler.bookmarks] == ["b2"]
        assert "b1" in submitter.deletes.deleting_ids
        assert not task.done()

        store.gate.set()
        assert await task is True
        assert submitter.deletes.deleting_ids == set()
        assert submitter.deletes.error is None
        assert [b.id for b in reconciler.bookmarks] == ["b2"]

    asyncio.run(scenario())


def test_failed_delete_restores_row_and_reports_error():
    async def scenario():
        store = FakeStore([bookmark(1), bookmark(2)])
        store.delete_error = "permission denied"
        reconciler = ListReconciler()
        reconciler.seed(await store.list_by_owner(1))
        submitter = _submitter(store, reconciler=reconciler)

        assert await submitter.delete("b1") is False

        assert submitter.deletes.error == "Failed to delete: permission denied"
        assert sorted(b.id for b in reconciler.bookmarks) == ["b1", "b2"]
        assert ("list", 1) in store.calls
        assert submitter.deletes.deleting_ids == set()

    asyncio.run(scenario())


def test_failed_delete_with_failed_refetch_keeps_error():
    async def scenario():
        store = FakeStore([bookmark(1)])
        store.delete_error = "network down"
        store.list_error = "network down"
        reconciler = ListReconciler()
        reconciler.seed([bookmark(1)])
        submitter = _submitter(store, reconciler=reconciler)

        assert await submitter.delete("b1") is False
        assert submitter.deletes.error == "Failed to delete: network down"
        assert reconciler.bookmarks == []

    asyncio.run(scenario())


def test_new_delete_clears_previous_error():
    async def scenario():
        store = FakeStore([bookmark(1), bookmark(2)])
        store.delete_error = "permission denied"
        reconciler = ListReconciler()
        reconciler.seed(await store.list_by_owner(1))
        submitter = _submitter(store, reconciler=reconciler)

        await submitter.delete("b1")
        store.delete_error = None
        assert await submitter.delete("b2") is True
        assert submitter.deletes.error is None

    asyncio.run(scenario())


def test_failed_delete_recovery_brings_back_row_with_delete_in_flight():
    async def scenario():
        store = FakeStore([bookmark(1), bookmark(2), bookmark(3)])
        store.gate = asyncio.Event()
        store.failing_ids = {"b1"}
        reconciler = ListReconciler()
        reconciler.seed(await store.list_by_owner(1))
        submitter = _submitter(store, reconciler=reconciler)

        pending = asyncio.create_task(submitter.delete("b3"))
        await settle()
        assert [b.id for b in reconciler.bookmarks] == ["b2", "b1"]

        assert await submitter.delete("b1") is False
        assert submitter.deletes.error == "Failed to delete: could not delete b1"
        # The snapshot still holds b3, so it returns, and restored rows land
        # at the top instead of in created_at order.
        assert [b.id for b in reconciler.bookmarks] == ["b1", "b3", "b2"]

        store.gate.set()
        assert await pending is True
        assert [b.id for b in reconciler.bookmarks] == ["b1", "b3", "b2"]
        assert [row.id for row in store.rows] == ["b1", "b2"]

    asyncio.run(scenario())
