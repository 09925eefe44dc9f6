"""Redis-backed task cache (`SET key value EX ttl`, `DEL key`)."""

import logging
from typing import List, Optional

import redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import BusyLoadingError, ConnectionError, RedisError
from redis.retry import Retry

from rytetime.cache.icache import ITaskCache
from rytetime.errors import CacheUnavailable
from rytetime.models.constants import REDIS_URL
from rytetime.models.task import Task

logger = logging.getLogger(__name__)


def build_redis_client(url: str, socket_timeout: float = 1.0) -> redis.Redis:
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        health_check_interval=10,
        retry_on_error=[BusyLoadingError, ConnectionError],
        retry=Retry(backoff=ExponentialBackoff(), retries=3),
        socket_connect_timeout=5,
        socket_timeout=socket_timeout,
    )


class RedisTaskCache(ITaskCache):
    def __init__(self, url: str = REDIS_URL, client: Optional[redis.Redis] = None):
        self._client = client or build_redis_client(url)
        logger.info("Using Redis task cache")

    def get(self, user_id: str) -> Optional[List[Task]]:
        try:
            raw = self._client.get(self.key(user_id))
        except RedisError as e:
            raise CacheUnavailable(f"Error getting cached tasks: {e}") from e
        if not raw:
            return None
        return self.deserialize(raw)

    def put(self, user_id: str, tasks: List[Task], ttl_sec: int) -> None:
        try:
            self._client.set(self.key(user_id), self.serialize(tasks), ex=ttl_sec)
        except RedisError as e:
            raise CacheUnavailable(f"Error caching tasks: {e}") from e

    def invalidate(self, user_id: str) -> None:
        try:
            self._client.delete(self.key(user_id))
        except RedisError as e:
            raise CacheUnavailable(f"Error invalidating cached tasks: {e}") from e
