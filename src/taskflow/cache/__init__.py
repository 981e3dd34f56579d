"""Task-list cache."""

from taskflow.cache.invalidation import (
    CacheInvalidator,
    TaskListCache,
    filter_fingerprint,
    task_list_cache_key,
)
from taskflow.cache.sink import CacheSink, InMemoryCacheSink, RedisCacheSink

__all__ = [
    "CacheInvalidator",
    "CacheSink",
    "InMemoryCacheSink",
    "RedisCacheSink",
    "TaskListCache",
    "filter_fingerprint",
    "task_list_cache_key",
]
