"""Redis list-backed notification queue.

Jobs are appended with RPUSH, read without removal via LRANGE, and
removed with LREM on the exact payload that was read.
"""

import logging
from typing import List, Optional, Set

import redis
from redis.exceptions import RedisError

from rytetime.cache.redis import build_redis_client
from rytetime.errors import QueueUnavailable
from rytetime.models.constants import QUEUE_KEY, REDIS_URL
from rytetime.models.job import DeliveryJob
from rytetime.queue.iqueue import INotificationQueue, parse_job, reminder_id_of

logger = logging.getLogger(__name__)


class RedisNotificationQueue(INotificationQueue):
    def __init__(self, url: str = REDIS_URL, key: str = QUEUE_KEY, client: Optional[redis.Redis] = None):
        self._client = client or build_redis_client(url, socket_timeout=5.0)
        self._key = key
        logger.info(f"Using Redis notification queue {key}")

    def push(self, job: DeliveryJob) -> None:
        try:
            self._client.rpush(self._key, job.to_json())
        except RedisError as e:
            raise QueueUnavailable(f"Error pushing job {job.job_id}: {e}") from e

    def peek_batch(self, max_n: int, offset: int = 0) -> List[DeliveryJob]:
        if max_n <= 0:
            return []
        try:
            raws = self._client.lrange(self._key, offset, offset + max_n - 1)
        except RedisError as e:
            raise QueueUnavailable(f"Error reading queue: {e}") from e
        jobs: List[DeliveryJob] = []
        for raw in raws:
            job = parse_job(raw)
            if job is None:
                self._lrem(raw)
                continue
            jobs.append(job)
        return jobs

    def remove(self, job: DeliveryJob) -> int:
        return self._lrem(job.to_json())

    def _lrem(self, raw: str) -> int:
        try:
            return int(self._client.lrem(self._key, 0, raw))
        except RedisError as e:
            raise QueueUnavailable(f"Error removing job from queue: {e}") from e

    def pending_reminder_ids(self) -> Set[str]:
        try:
            raws = self._client.lrange(self._key, 0, -1)
        except RedisError as e:
            raise QueueUnavailable(f"Error reading queue: {e}") from e
        return {rid for rid in (reminder_id_of(raw) for raw in raws) if rid}

    def size(self) -> int:
        try:
            return int(self._client.llen(self._key))
        except RedisError as e:
            raise QueueUnavailable(f"Error reading queue length: {e}") from e
