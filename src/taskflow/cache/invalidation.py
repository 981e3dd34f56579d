"""Task-list cache: read-through loading and invalidation on task mutations."""

import json
import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

from taskflow.cache.sink import CacheSink
from taskflow.observability.metrics import metrics

logger = logging.getLogger(__name__)


def filter_fingerprint(filters: Optional[dict[str, Any]]) -> str:
    """Deterministic fingerprint of a task-list filter (canonical JSON)."""
    return json.dumps(filters or {}, sort_keys=True, separators=(",", ":"), default=str)


def user_prefix(user_id: str, namespace: str = "tasks") -> str:
    # Percent-encode so ":" in one user id can never reach into another's keys
    return f"{namespace}:{quote(user_id, safe='')}:"


def task_list_cache_key(user_id: str, filters: Optional[dict[str, Any]] = None, namespace: str = "tasks") -> str:
    return f"{user_prefix(user_id, namespace)}{filter_fingerprint(filters)}"


class CacheInvalidator:
    """Drops every cached task list of the users a mutation affects.

    Keys are listed and then deleted one at a time. The two steps are not
    atomic; an entry written in between survives until its TTL runs out.
    """

    def __init__(self, cache: CacheSink, namespace: str = "tasks"):
        self.cache = cache
        self.namespace = namespace

    async def invalidate(self, user_id: str) -> int:
        """Delete all task-list entries of one user. Never raises."""
        try:
            keys = await self.cache.keys_matching(user_prefix(user_id, self.namespace))
        except Exception as e:
            logger.error(f"Cache invalidation failed for user {user_id}: {e}")
            metrics.inc_counter("cache.invalidation_errors")
            return 0

        deleted = 0
        for key in keys:
            try:
                if await self.cache.delete(key):
                    deleted += 1
            except Exception as e:
                logger.error(f"Cache delete failed for {key}: {e}")
                metrics.inc_counter("cache.invalidation_errors")

        if deleted:
            metrics.inc_counter("cache.keys_invalidated", deleted)
            logger.debug(f"Invalidated {deleted} task list entries for user {user_id}")
        return deleted

    async def invalidate_for_mutation(
        self,
        actor_id: str,
        assignee_id: Optional[str] = None,
        previous_assignee_id: Optional[str] = None,
    ) -> list[str]:
        """Invalidate the actor, the assignee and a replaced previous assignee.

        Returns the user ids that were invalidated.
        """
        users = [actor_id]
        if assignee_id and assignee_id != actor_id:
            users.append(assignee_id)
        if (
            previous_assignee_id
            and previous_assignee_id != actor_id
            and previous_assignee_id != assignee_id
        ):
            users.append(previous_assignee_id)

        for user_id in users:
            await self.invalidate(user_id)
        return users


class TaskListCache:
    """Read-through cache in front of the task service's list query."""

    def __init__(self, cache: CacheSink, ttl_seconds: int = 60, namespace: str = "tasks"):
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace

    async def get_or_load(
        self,
        user_id: str,
        filters: Optional[dict[str, Any]],
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        key = task_list_cache_key(user_id, filters, self.namespace)
        try:
            cached = await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            cached = None

        if cached is not None:
            metrics.inc_counter("cache.hits")
            return cached

        metrics.inc_counter("cache.misses")
        value = await loader()
        try:
            await self.cache.set(key, value, self.ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
        return value
