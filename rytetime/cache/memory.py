"""In-process task cache."""

import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from rytetime.cache.icache import ITaskCache
from rytetime.models.constants import CACHE_MAX_SIZE
from rytetime.models.task import Task

logger = logging.getLogger(__name__)


class MemoryTaskCache(ITaskCache):
    """
    A simple in-memory cache.

    Use the least recently used (LRU) policy to remove the oldest used items when the cache is full.
    Entries are stored serialized so callers never share mutable Task objects.
    """

    def __init__(self, max_size: int = CACHE_MAX_SIZE):
        self._max_size = max_size
        self._cache: "OrderedDict[str, str]" = OrderedDict()
        self._ttl: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[List[Task]]:
        key = self.key(user_id)
        with self._lock:
            expires_at = self._ttl.get(key)
            if expires_at is not None and expires_at <= datetime.now(timezone.utc):
                self._cache.pop(key, None)
                self._ttl.pop(key, None)
                return None
            raw = self._cache.get(key)
            if raw is None:
                return None
            self._cache.move_to_end(key)
        return self.deserialize(raw)

    def put(self, user_id: str, tasks: List[Task], ttl_sec: int) -> None:
        key = self.key(user_id)
        raw = self.serialize(tasks)
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_size:
                evicted, _ = self._cache.popitem(last=False)
                self._ttl.pop(evicted, None)
            self._cache[key] = raw
            self._cache.move_to_end(key)
            self._ttl[key] = datetime.now(timezone.utc) + timedelta(seconds=ttl_sec)

    def invalidate(self, user_id: str) -> None:
        key = self.key(user_id)
        with self._lock:
            self._cache.pop(key, None)
            self._ttl.pop(key, None)

    def __len__(self) -> int:
        return len(self._cache)
