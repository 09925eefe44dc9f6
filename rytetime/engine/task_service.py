"""Task and reminder use cases.

Every write follows the same order: validate, commit to the store,
invalidate the owner's cached task list, then enqueue delivery jobs for
new reminders. Cache and queue failures are logged and never fail a
write that has already committed.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from rytetime.cache.icache import ITaskCache
from rytetime.database.repository import TaskRepository
from rytetime.engine.reminder_scheduler import ReminderScheduler, build_reminders, rebuild_reminders
from rytetime.engine.timezones import to_instant, to_wall_clock, utc_now, validate_timezone
from rytetime.errors import CacheUnavailable, ConcurrentModification
from rytetime.models.constants import CACHE_TTL_SECONDS
from rytetime.models.task import Reminder, ReminderRequest, Task
from rytetime.models.task_factory import create_task_base, local_view
from rytetime.queue.iqueue import INotificationQueue
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "priority", "tags", "recurrence_rule")


class TaskService:
    """Owner-scoped task operations on top of the store, cache and queue."""

    def __init__(
        self,
        db: Session,
        cache: ITaskCache,
        queue: INotificationQueue,
        cache_ttl_sec: int = CACHE_TTL_SECONDS,
    ):
        self.repository = TaskRepository(db)
        self.cache = cache
        self.scheduler = ReminderScheduler(queue)
        self.cache_ttl_sec = cache_ttl_sec

    # Cache helpers

    def _invalidate(self, user_id: str) -> None:
        try:
            self.cache.invalidate(user_id)
        except CacheUnavailable as e:
            logger.warning(f"Cache invalidation failed for user {user_id}: {e}")

    def _cached_tasks(self, user_id: str) -> Optional[List[Task]]:
        try:
            return self.cache.get(user_id)
        except CacheUnavailable as e:
            logger.warning(f"Cache read failed for user {user_id}: {e}")
            return None

    def _cache_tasks(self, user_id: str, tasks: List[Task]) -> None:
        try:
            self.cache.put(user_id, tasks, self.cache_ttl_sec)
        except CacheUnavailable as e:
            logger.warning(f"Cache write failed for user {user_id}: {e}")

    # Tasks

    def create_task(
        self,
        user_id: str,
        title: str,
        origin_datetime: datetime,
        origin_timezone: str,
        reminders: Optional[List[ReminderRequest]] = None,
        **fields: Any,
    ) -> Task:
        """Create a task, and optionally its reminders, in one transaction.

        Raises:
            InvalidTimeZone: If the origin or local zone does not resolve
            InvalidOffset: If any reminder offset is negative
        """
        task = create_task_base(
            user_id=user_id,
            title=title,
            origin_datetime=origin_datetime,
            origin_timezone=origin_timezone,
            **fields,
        )
        new_reminders = build_reminders(task, reminders or [])
        created = self.repository.create_task_with_reminders(task, new_reminders)
        self._invalidate(user_id)
        self.scheduler.enqueue(created.reminders, user_id)
        logger.info(f"Created task {created.id} for user {user_id} with {len(created.reminders)} reminder(s)")
        return created

    def get_task(self, user_id: str, task_id: str) -> Task:
        return self.repository.get_task(user_id, task_id)

    def list_tasks(self, user_id: str) -> List[Task]:
        """Read-through: cached list if present, otherwise the store (then cached)."""
        cached = self._cached_tasks(user_id)
        if cached is not None:
            return cached
        tasks = self.repository.list_tasks(user_id)
        self._cache_tasks(user_id, tasks)
        return tasks

    def update_task(
        self,
        user_id: str,
        task_id: str,
        changes: Dict[str, Any],
        reminders: Optional[List[ReminderRequest]] = None,
        expected_version: Optional[int] = None,
    ) -> Task:
        """Apply a partial update.

        ``changes`` may hold the plain fields in UPDATABLE_FIELDS plus
        ``origin_datetime``, ``origin_timezone`` and ``local_timezone``.
        A naive ``origin_datetime`` is read in the (new or current) origin
        zone; changing only ``origin_timezone`` keeps the wall-clock
        reading and moves the instant. When the due instant moves and no
        reminder set is given, the existing offsets are rescheduled
        against the new instant. A given reminder set replaces the old one.
        """
        current = self.repository.get_task(user_id, task_id)
        if expected_version is not None and expected_version != current.version:
            raise ConcurrentModification(
                f"Task {task_id} is at version {current.version}, expected {expected_version}"
            )

        updates: Dict[str, Any] = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

        origin_timezone = changes.get("origin_timezone") or current.origin_timezone
        validate_timezone(origin_timezone)
        if changes.get("origin_datetime") is not None:
            instant = to_instant(changes["origin_datetime"], origin_timezone)
        elif origin_timezone != current.origin_timezone:
            wall = to_wall_clock(current.origin_datetime, current.origin_timezone)
            instant = to_instant(wall, origin_timezone)
        else:
            instant = current.origin_datetime

        local_timezone = changes.get("local_timezone") or current.local_timezone or origin_timezone
        updates.update(
            origin_datetime=instant,
            origin_timezone=origin_timezone,
            local_timezone=local_timezone,
            local_datetime=local_view(instant, local_timezone),
            updated_at=utc_now(),
        )
        updated = Task.model_validate({**current.model_dump(), **updates})

        if reminders is not None:
            new_reminders: Optional[List[Reminder]] = build_reminders(updated, reminders)
        elif instant != current.origin_datetime:
            new_reminders = rebuild_reminders(updated, current.reminders)
        else:
            new_reminders = None

        saved = self.repository.update_task_with_reminders(updated, new_reminders)
        self._invalidate(user_id)
        if new_reminders is not None:
            self.scheduler.enqueue(saved.reminders, user_id)
        logger.info(f"Updated task {task_id} for user {user_id} (version {saved.version})")
        return saved

    def delete_task(self, user_id: str, task_id: str) -> None:
        self.repository.delete_task(user_id, task_id)
        self._invalidate(user_id)
        logger.info(f"Deleted task {task_id} for user {user_id}")

    # Reminders

    def add_reminders(self, user_id: str, task_id: str, requests: List[ReminderRequest]) -> List[Reminder]:
        """Attach reminders to an existing task and enqueue their jobs."""
        task = self.repository.get_task(user_id, task_id)
        created = self.repository.create_reminders(user_id, task_id, build_reminders(task, requests))
        self._invalidate(user_id)
        self.scheduler.enqueue(created, user_id)
        return created

    def list_reminders(self, user_id: str, task_id: str) -> List[Reminder]:
        return self.repository.list_reminders(user_id, task_id)

    def delete_reminders(self, user_id: str, task_id: str) -> int:
        count = self.repository.delete_reminders(user_id, task_id)
        self._invalidate(user_id)
        return count

    def delete_reminder(self, user_id: str, reminder_id: str) -> None:
        self.repository.delete_reminder(user_id, reminder_id)
        self._invalidate(user_id)
