"""Re-enqueue due reminders whose delivery job never reached the queue."""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rytetime.database.repository import TaskRepository
from rytetime.engine.reminder_scheduler import ReminderScheduler
from rytetime.engine.timezones import as_utc, utc_now
from rytetime.models.constants import RECONCILE_LIMIT
from rytetime.queue.iqueue import INotificationQueue

logger = logging.getLogger(__name__)


class ReconciliationResult(BaseModel):
    requeued_count: int = Field(0, description="Jobs pushed by this sweep")
    reminder_ids: List[str] = Field(default_factory=list, description="Reminders that were re-enqueued")


def reconcile_unqueued_reminders(
    db: Session,
    queue: INotificationQueue,
    now: Optional[datetime] = None,
    limit: int = RECONCILE_LIMIT,
) -> ReconciliationResult:
    """Push a job for every unsent, due reminder that has none queued.

    Covers writes whose enqueue failed after the store commit.
    """
    now = as_utc(now) if now else utc_now()
    queued = queue.pending_reminder_ids()
    scheduler = ReminderScheduler(queue)
    result = ReconciliationResult()
    for reminder, user_id in TaskRepository(db).list_unsent_due_reminders(now, limit):
        if reminder.id in queued:
            continue
        if scheduler.enqueue([reminder], user_id):
            result.requeued_count += 1
            result.reminder_ids.append(reminder.id)
    if result.requeued_count:
        logger.info(f"Reconciliation re-enqueued {result.requeued_count} reminder(s)")
    return result
