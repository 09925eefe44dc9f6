"""Per-user task list cache contract."""

import json
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from rytetime.errors import CacheUnavailable
from rytetime.models.constants import CACHE_KEY_PREFIX
from rytetime.models.task import Task

_task_list = TypeAdapter(List[Task])


class ITaskCache(ABC):
    """Look-aside cache of a user's task list.

    A hit is valid until the next write for that user invalidates it or
    the TTL elapses. Backends raise CacheUnavailable on infrastructure
    errors; callers treat that as a miss.
    """

    @abstractmethod
    def get(self, user_id: str) -> Optional[List[Task]]:
        pass

    @abstractmethod
    def put(self, user_id: str, tasks: List[Task], ttl_sec: int) -> None:
        pass

    @abstractmethod
    def invalidate(self, user_id: str) -> None:
        pass

    @staticmethod
    def key(user_id: str) -> str:
        return f"{CACHE_KEY_PREFIX}{user_id}"

    @staticmethod
    def serialize(tasks: List[Task]) -> str:
        return json.dumps([task.model_dump(mode="json") for task in tasks])

    @staticmethod
    def deserialize(raw: str) -> List[Task]:
        """Decode a cached list; an entry that no longer validates is reported as CacheUnavailable."""
        try:
            return _task_list.validate_json(raw)
        except (ValidationError, ValueError) as e:
            raise CacheUnavailable(f"Unreadable cache entry: {e}") from e
