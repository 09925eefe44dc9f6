"""In-process notification queue for development and tests."""

import threading
from typing import List, Set

from rytetime.models.job import DeliveryJob
from rytetime.queue.iqueue import INotificationQueue, parse_job, reminder_id_of


class MemoryNotificationQueue(INotificationQueue):
    """List-backed queue holding the same serialized payloads the Redis backend stores."""

    def __init__(self) -> None:
        self._items: List[str] = []
        self._lock = threading.Lock()

    def push(self, job: DeliveryJob) -> None:
        with self._lock:
            self._items.append(job.to_json())

    def push_raw(self, raw: str) -> None:
        with self._lock:
            self._items.append(raw)

    def peek_batch(self, max_n: int, offset: int = 0) -> List[DeliveryJob]:
        with self._lock:
            window = self._items[offset:offset + max_n]
        jobs: List[DeliveryJob] = []
        for raw in window:
            job = parse_job(raw)
            if job is None:
                self._remove_raw(raw)
                continue
            jobs.append(job)
        return jobs

    def remove(self, job: DeliveryJob) -> int:
        return self._remove_raw(job.to_json())

    def _remove_raw(self, raw: str) -> int:
        with self._lock:
            before = len(self._items)
            self._items = [item for item in self._items if item != raw]
            return before - len(self._items)

    def pending_reminder_ids(self) -> Set[str]:
        with self._lock:
            items = list(self._items)
        return {rid for rid in (reminder_id_of(raw) for raw in items) if rid}

    def size(self) -> int:
        with self._lock:
            return len(self._items)
