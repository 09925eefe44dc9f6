"""Task cache backends and the process-wide cache selector."""

import logging
from functools import lru_cache

from rytetime.cache.icache import ITaskCache
from rytetime.cache.memory import MemoryTaskCache
from rytetime.cache.null import NullTaskCache
from rytetime.models.constants import CACHE_BACKEND, CACHE_MAX_SIZE, REDIS_URL

logger = logging.getLogger(__name__)


def build_task_cache(backend: str) -> ITaskCache:
    """Instantiate the cache named by ``backend`` (memory, redis or none)."""
    if backend == "redis":
        from rytetime.cache.redis import RedisTaskCache

        return RedisTaskCache(REDIS_URL)
    if backend in ("none", "null", "off"):
        return NullTaskCache()
    if backend != "memory":
        raise ValueError(f"Unknown cache backend: {backend}")
    logger.warning(
        f"Using memory cache with {CACHE_MAX_SIZE} size limit, prefer Redis when running more than one process"
    )
    return MemoryTaskCache(CACHE_MAX_SIZE)


@lru_cache
def get_task_cache() -> ITaskCache:
    return build_task_cache(CACHE_BACKEND)


__all__ = ["ITaskCache", "MemoryTaskCache", "NullTaskCache", "build_task_cache", "get_task_cache"]
