"""Notification queue backends and the process-wide queue selector."""

import logging
from functools import lru_cache

from rytetime.models.constants import QUEUE_BACKEND, QUEUE_KEY, REDIS_URL
from rytetime.queue.iqueue import INotificationQueue
from rytetime.queue.memory import MemoryNotificationQueue

logger = logging.getLogger(__name__)


def build_notification_queue(backend: str) -> INotificationQueue:
    """Instantiate the queue named by ``backend`` (memory or redis)."""
    if backend == "redis":
        from rytetime.queue.redis import RedisNotificationQueue

        return RedisNotificationQueue(REDIS_URL, QUEUE_KEY)
    if backend != "memory":
        raise ValueError(f"Unknown queue backend: {backend}")
    logger.warning("Using memory notification queue, jobs are lost on restart and not shared between processes")
    return MemoryNotificationQueue()


@lru_cache
def get_notification_queue() -> INotificationQueue:
    return build_notification_queue(QUEUE_BACKEND)


__all__ = ["INotificationQueue", "MemoryNotificationQueue", "build_notification_queue", "get_notification_queue"]
