"""
Task-list cache keys, read-through loading and invalidation.
"""

import pytest

from taskflow.cache import (
    CacheInvalidator,
    InMemoryCacheSink,
    TaskListCache,
    filter_fingerprint,
    task_list_cache_key,
)
from taskflow.observability.metrics import metrics


class BrokenCache(InMemoryCacheSink):
    async def keys_matching(self, prefix):
        raise ConnectionError("cache unreachable")


class FlakyDeleteCache(InMemoryCacheSink):
    """Fails to delete the first key it is asked to delete."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.failed = False

    async def delete(self, key):
        if not self.failed:
            self.failed = True
            raise ConnectionError("cache unreachable")
        return await super().delete(key)


@pytest.fixture
def cache(clock):
    return InMemoryCacheSink(clock=clock)


def test_fingerprint_ignores_key_order():
    assert filter_fingerprint({"status": "TODO", "projectId": "p1"}) == filter_fingerprint(
        {"projectId": "p1", "status": "TODO"}
    )
    assert filter_fingerprint(None) == filter_fingerprint({}) == "{}"


def test_cache_key_layout():
    assert task_list_cache_key("u1", {"status": "TODO"}) == 'tasks:u1:{"status":"TODO"}'


@pytest.mark.asyncio
async def test_invalidate_drops_every_entry_of_one_user(cache):
    await cache.set(task_list_cache_key("u1"), ["a"], 60)
    await cache.set(task_list_cache_key("u1", {"status": "DONE"}), ["b"], 60)
    await cache.set(task_list_cache_key("u10"), ["c"], 60)
    await cache.set(task_list_cache_key("u2"), ["d"], 60)

    deleted = await CacheInvalidator(cache).invalidate("u1")

    assert deleted == 2
    assert await cache.keys_matching("tasks:u1:") == []
    assert await cache.get(task_list_cache_key("u10")) == ["c"]
    assert await cache.get(task_list_cache_key("u2")) == ["d"]


@pytest.mark.asyncio
async def test_user_ids_with_separator_do_not_share_a_prefix(cache):
    await cache.set(task_list_cache_key("a"), ["a"], 60)
    await cache.set(task_list_cache_key("a:b"), ["a:b"], 60)

    assert await CacheInvalidator(cache).invalidate("a") == 1
    assert await cache.get(task_list_cache_key("a:b")) == ["a:b"]


@pytest.mark.asyncio
async def test_failed_delete_does_not_stop_remaining_deletes(clock):
    cache = FlakyDeleteCache(clock=clock)
    await cache.set(task_list_cache_key("u1"), ["a"], 60)
    await cache.set(task_list_cache_key("u1", {"status": "DONE"}), ["b"], 60)

    deleted = await CacheInvalidator(cache).invalidate("u1")

    assert deleted == 1
    assert len(await cache.keys_matching("tasks:u1:")) == 1
    assert metrics.counter_value("cache.invalidation_errors") == 1


@pytest.mark.asyncio
async def test_mutation_invalidates_actor_assignee_and_previous_assignee(cache):
    for user in ("actor", "new", "old", "bystander"):
        await cache.set(task_list_cache_key(user), [user], 60)

    users = await CacheInvalidator(cache).invalidate_for_mutation("actor", "new", "old")

    assert users == ["actor", "new", "old"]
    assert await cache.keys_matching("tasks:") == [task_list_cache_key("bystander")]


@pytest.mark.asyncio
async def test_mutation_does_not_repeat_users(cache):
    users = await CacheInvalidator(cache).invalidate_for_mutation("u1", "u1", "u1")

    assert users == ["u1"]


@pytest.mark.asyncio
async def test_invalidation_failure_is_swallowed():
    deleted = await CacheInvalidator(BrokenCache()).invalidate("u1")

    assert deleted == 0
    assert metrics.counter_value("cache.invalidation_errors") == 1


@pytest.mark.asyncio
async def test_read_through_loads_once_until_invalidated(cache):
    calls = []

    async def loader():
        calls.append(1)
        return [{"id": "t1"}]

    task_lists = TaskListCache(cache, ttl_seconds=60)

    assert await task_lists.get_or_load("u1", {"status": "TODO"}, loader) == [{"id": "t1"}]
    assert await task_lists.get_or_load("u1", {"status": "TODO"}, loader) == [{"id": "t1"}]
    assert len(calls) == 1

    await CacheInvalidator(cache).invalidate("u1")
    await task_lists.get_or_load("u1", {"status": "TODO"}, loader)
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_entries_expire_after_ttl(cache, clock):
    await cache.set("tasks:u1:{}", ["a"], 60)

    clock.advance(61)

    assert await cache.get("tasks:u1:{}") is None
    assert await cache.keys_matching("tasks:u1:") == []
