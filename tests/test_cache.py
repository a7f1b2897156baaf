import asyncio
from uuid import uuid4

import pytest

from azchallenges.errors import PersistenceError
from azchallenges.storage import ProgressCache, ProgressField, ProgressRecord

from .conftest import MemoryStore


def test_get_missing_key_is_empty_and_cached(store: MemoryStore, cache: ProgressCache) -> None:
    record = asyncio.run(cache.get("alice"))
    assert record == ProgressRecord()
    assert cache.is_cached("alice")
    assert store.puts == []


def test_set_then_get_round_trips(store: MemoryStore, cache: ProgressCache) -> None:
    record = ProgressRecord(subscription_id="sub", sql_server="sql-one").with_completion(uuid4())

    async def scenario() -> ProgressRecord:
        await cache.set("alice", record)
        return await cache.get("alice")

    assert asyncio.run(scenario()) == record
    assert ProgressRecord.from_bytes(store.data["alice"]) == record


def test_get_returns_a_copy(cache: ProgressCache) -> None:
    async def scenario() -> ProgressRecord:
        first = await cache.get("alice")
        first.completed_challenges.append(uuid4())
        first.key_vault = "changed"
        return await cache.get("alice")

    assert asyncio.run(scenario()) == ProgressRecord()


def test_invalidate_reloads_from_store(store: MemoryStore, cache: ProgressCache) -> None:
    async def scenario() -> ProgressRecord:
        await cache.get("alice")
        store.data["alice"] = ProgressRecord(app_service="web-one").to_bytes()
        stale = await cache.get("alice")
        assert stale.app_service is None
        cache.invalidate("alice")
        assert not cache.is_cached("alice")
        return await cache.get("alice")

    assert asyncio.run(scenario()).app_service == "web-one"
    assert "alice" in store.data


def test_read_failure_degrades_to_uncached_default(store: MemoryStore, cache: ProgressCache) -> None:
    store.fail_reads = True
    assert asyncio.run(cache.get("alice")) == ProgressRecord()
    assert not cache.is_cached("alice")


def test_corrupt_record_degrades_to_default(store: MemoryStore, cache: ProgressCache) -> None:
    store.data["alice"] = b"{not json"
    assert asyncio.run(cache.get("alice")) == ProgressRecord()
    assert not cache.is_cached("alice")


def test_failed_write_propagates_and_keeps_cache(store: MemoryStore, cache: ProgressCache) -> None:
    async def scenario() -> None:
        await cache.set("alice", ProgressRecord(subscription_id="kept"))
        store.fail_writes = True
        with pytest.raises(PersistenceError):
            await cache.set("alice", ProgressRecord())
        assert (await cache.get("alice")).subscription_id == "kept"

    asyncio.run(scenario())


def test_update_fails_hard_when_store_unreadable(store: MemoryStore, cache: ProgressCache) -> None:
    store.fail_reads = True
    with pytest.raises(PersistenceError):
        asyncio.run(cache.update("alice", lambda record: record.with_completion(uuid4())))
    assert store.puts == []


def test_update_without_change_skips_write(store: MemoryStore, cache: ProgressCache) -> None:
    challenge_id = uuid4()

    async def scenario() -> None:
        await cache.update("alice", lambda record: record.with_completion(challenge_id))
        await cache.update("alice", lambda record: record.with_completion(challenge_id))

    asyncio.run(scenario())
    assert store.puts == ["alice"]


def test_concurrent_updates_for_one_key_are_not_lost(cache: ProgressCache) -> None:
    ids = [uuid4() for _ in range(20)]

    async def scenario() -> ProgressRecord:
        await asyncio.gather(
            *(cache.update("alice", lambda record, i=i: record.with_completion(i)) for i in ids)
        )
        cache.invalidate("alice")
        return await cache.get("alice")

    record = asyncio.run(scenario())
    assert sorted(record.completed_challenges) == sorted(ids)


def test_different_keys_do_not_share_a_lock(cache: ProgressCache) -> None:
    async def scenario() -> None:
        async with cache._lock_for("alice"):
            # bob's write completes while alice's lock is held
            await asyncio.wait_for(cache.set("bob", ProgressRecord(resource_group="rg")), timeout=1)

    asyncio.run(scenario())
    assert asyncio.run(cache.get("bob")).value_of(ProgressField.RESOURCE_GROUP) == "rg"


def test_invalidate_releases_idle_lock(cache: ProgressCache) -> None:
    asyncio.run(cache.set("alice", ProgressRecord()))
    assert "alice" in cache._locks

    cache.invalidate("alice")
    assert "alice" not in cache._locks
    assert not cache.is_cached("alice")


def test_invalidate_keeps_lock_held_by_writer(cache: ProgressCache) -> None:
    async def scenario() -> None:
        lock = cache._lock_for("alice")
        async with lock:
            cache.invalidate("alice")
            assert cache._lock_for("alice") is lock

    asyncio.run(scenario())
