"""Thread store against an in-memory collection."""

from datetime import datetime, timezone

import pytest

from assistant_bff.errors import StoreError
from assistant_bff.services.thread_store_service import ThreadStoreService


@pytest.mark.asyncio
async def test_create_thread_assigns_identity_and_timestamps(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)

    thread = await store.create_thread("user-1", "Ana", "th_1")

    assert thread.id
    assert thread.owner_id == "user-1"
    assert thread.owner_display_name == "Ana"
    assert thread.external_thread_id == "th_1"
    assert thread.created_at == thread.updated_at
    assert threads_collection.docs[thread.id]["external_thread_id"] == "th_1"


@pytest.mark.asyncio
async def test_duplicate_external_id_raises_store_error(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)
    await store.create_thread("user-1", "Ana", "th_1")

    with pytest.raises(StoreError):
        await store.create_thread("user-2", "Bob", "th_1")


@pytest.mark.asyncio
async def test_create_thread_connectivity_failure(broken_collection) -> None:
    with pytest.raises(StoreError) as excinfo:
        await ThreadStoreService(broken_collection).create_thread("user-1", "Ana", "th_1")

    assert excinfo.value.details["external_thread_id"] == "th_1"


@pytest.mark.asyncio
async def test_find_is_scoped_to_owner(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)
    created = await store.create_thread("user-1", "Ana", "th_1")

    assert await store.find_thread_by_external_id("th_1", "user-1") == created
    assert await store.find_thread_by_external_id("th_1", "user-2") is None
    assert await store.find_thread_by_external_id("th_missing", "user-1") is None


@pytest.mark.asyncio
async def test_admin_lookup_ignores_owner(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)
    created = await store.create_thread("user-1", "Ana", "th_1")

    assert await store.get_thread_by_external_id("th_1") == created
    assert await store.get_thread_by_external_id("th_missing") is None
    assert await store.get_thread_by_external_id("") is None


@pytest.mark.asyncio
async def test_admin_lookup_connectivity_failure(broken_collection) -> None:
    with pytest.raises(StoreError):
        await ThreadStoreService(broken_collection).get_thread_by_external_id("th_1")


@pytest.mark.asyncio
async def test_find_is_idempotent(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)
    await store.create_thread("user-1", "Ana", "th_1")

    first = await store.find_thread_by_external_id("th_1", "user-1")
    second = await store.find_thread_by_external_id("th_1", "user-1")

    assert first == second


@pytest.mark.asyncio
async def test_touch_updates_timestamp(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)
    thread = await store.create_thread("user-1", "Ana", "th_1")

    await store.touch_thread("th_1")

    assert threads_collection.docs[thread.id]["updated_at"] >= thread.updated_at


@pytest.mark.asyncio
async def test_touch_swallows_failures(broken_collection) -> None:
    await ThreadStoreService(broken_collection).touch_thread("th_1")


@pytest.mark.asyncio
async def test_delete_removes_only_target_record(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)
    keep = await store.create_thread("user-1", "Ana", "th_1")
    drop = await store.create_thread("user-1", "Ana", "th_2")

    await store.delete_thread(drop.id)

    assert list(threads_collection.docs) == [keep.id]


@pytest.mark.asyncio
async def test_list_threads_for_owner_newest_activity_first(threads_collection) -> None:
    store = ThreadStoreService(threads_collection)
    older = await store.create_thread("user-1", "Ana", "th_1")
    newer = await store.create_thread("user-1", "Ana", "th_2")
    await store.create_thread("user-2", "Bob", "th_3")
    threads_collection.docs[older.id]["updated_at"] = datetime(2026, 1, 2, tzinfo=timezone.utc)
    threads_collection.docs[newer.id]["updated_at"] = datetime(2026, 1, 1, tzinfo=timezone.utc)

    threads = await store.list_threads_for_owner("user-1")

    assert [t.external_thread_id for t in threads] == ["th_1", "th_2"]
    assert len(await store.list_threads_for_owner("user-1", limit=1)) == 1
