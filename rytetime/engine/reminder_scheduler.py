"""Reminder construction and enqueueing.

A reminder fires ``offset`` minutes before the task's due instant. The
arithmetic is done on the absolute instant, so a reminder lands at the
same real moment whatever zone the task was entered in, across DST
transitions included.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Iterable, List

from rytetime.engine.timezones import as_utc, utc_now
from rytetime.errors import InvalidOffset, QueueUnavailable
from rytetime.models.job import DeliveryJob
from rytetime.models.task import NotificationType, Reminder, ReminderRequest, Task
from rytetime.queue.iqueue import INotificationQueue

logger = logging.getLogger(__name__)


def validate_offset(offset_minutes) -> int:
    """Return the offset if it is a non-negative integer, else raise InvalidOffset."""
    if isinstance(offset_minutes, bool) or not isinstance(offset_minutes, int):
        raise InvalidOffset(f"Reminder offset must be an integer number of minutes, got {offset_minutes!r}")
    if offset_minutes < 0:
        raise InvalidOffset(f"Reminder offset must not be negative, got {offset_minutes}")
    return offset_minutes


def compute_scheduled_at(origin_datetime: datetime, offset_minutes: int) -> datetime:
    return as_utc(origin_datetime) - timedelta(minutes=validate_offset(offset_minutes))


def build_reminders(task: Task, requests: Iterable[ReminderRequest]) -> List[Reminder]:
    """Build unsaved reminders for a task.

    Every offset is validated before anything is built, so one bad
    request rejects the whole set. A scheduled time already in the past
    is accepted; the worker delivers it on its next cycle.
    """
    requests = list(requests)
    for request in requests:
        validate_offset(request.offset_minutes)
    now = utc_now()
    return [
        Reminder(
            id=str(uuid.uuid4()),
            task_id=task.id,
            notify_offset_minutes=request.offset_minutes,
            notify_type=NotificationType(request.type),
            scheduled_at=compute_scheduled_at(task.origin_datetime, request.offset_minutes),
            sent=False,
            created_at=now,
        )
        for request in requests
    ]


def rebuild_reminders(task: Task, existing: Iterable[Reminder]) -> List[Reminder]:
    """Fresh reminders with the same offsets and channels, timed against the task's current due instant."""
    return build_reminders(
        task,
        [ReminderRequest(offset_minutes=r.notify_offset_minutes, type=r.notify_type) for r in existing],
    )


class ReminderScheduler:
    """Pushes one delivery job per persisted reminder."""

    def __init__(self, queue: INotificationQueue):
        self.queue = queue

    def enqueue(self, reminders: Iterable[Reminder], user_id: str) -> List[str]:
        """Enqueue jobs for already-persisted reminders.

        Returns the IDs of the jobs that were pushed. A queue failure is
        logged and the remaining reminders are left for the
        reconciliation sweep; it never fails the write that created them.
        """
        job_ids: List[str] = []
        for reminder in reminders:
            if reminder.sent:
                continue
            job = DeliveryJob.for_reminder(reminder, user_id)
            try:
                self.queue.push(job)
            except QueueUnavailable as e:
                logger.warning(f"Queue unavailable, reminder {reminder.id} left for reconciliation: {e}")
                continue
            job_ids.append(job.job_id)
            logger.debug(f"Enqueued job {job.job_id} for reminder {reminder.id} at {reminder.scheduled_at.isoformat()}")
        return job_ids
