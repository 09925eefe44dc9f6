"""Cache backend that never stores anything."""

from typing import List, Optional

from rytetime.cache.icache import ITaskCache
from rytetime.models.task import Task


class NullTaskCache(ITaskCache):
    def get(self, user_id: str) -> Optional[List[Task]]:
        return None

    def put(self, user_id: str, tasks: List[Task], ttl_sec: int) -> None:
        return None

    def invalidate(self, user_id: str) -> None:
        return None
