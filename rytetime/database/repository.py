"""Repository layer for task and reminder persistence.

All reads and writes are owner-scoped except the two worker-side lookups
(`get_reminder`, `get_task_by_id`) and the reconciliation sweep. A task
or reminder that is missing or belongs to someone else raises NotFound.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from rytetime.database.models import ReminderDB, TaskDB
from rytetime.engine.timezones import to_naive_utc, utc_now
from rytetime.errors import ConcurrentModification, NotFound, StoreUnavailable
from rytetime.models.task import Reminder, Task

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task and Reminder database operations."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _store_errors(self, action: str) -> Iterator[None]:
        """Roll back and translate SQLAlchemy failures into store errors."""
        try:
            yield
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"Concurrent modification while trying to {action}")
            raise ConcurrentModification(f"Concurrent modification while trying to {action}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailable(f"Failed to {action}") from e

    def _task_row(self, user_id: str, task_id: str, for_update: bool = False) -> TaskDB:
        query = self.db.query(TaskDB).filter(TaskDB.id == task_id, TaskDB.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        task_db = query.first()
        if task_db is None:
            raise NotFound(f"Task {task_id} not found")
        return task_db

    def _check_version(self, task_db: TaskDB, expected_version: int) -> None:
        if task_db.version != expected_version:
            self.db.rollback()
            raise ConcurrentModification(
                f"Task {task_db.id} is at version {task_db.version}, expected {expected_version}"
            )

    # Tasks

    def create_task(self, task: Task) -> Task:
        """Create a new task without reminders."""
        return self.create_task_with_reminders(task, [])

    def create_task_with_reminders(self, task: Task, reminders: List[Reminder]) -> Task:
        """Create a task and its reminders in one transaction."""
        with self._store_errors(f"create task {task.id}"):
            task_db = TaskDB.from_pydantic(task)
            task_db.reminders = [ReminderDB.from_pydantic(r) for r in reminders]
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id} with {len(reminders)} reminder(s): {task.title[:50]}")
            return task_db.to_pydantic()

    def get_task(self, user_id: str, task_id: str) -> Task:
        """Get a task owned by the user."""
        with self._store_errors(f"get task {task_id}"):
            return self._task_row(user_id, task_id).to_pydantic()

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        """Worker-side lookup without an owner scope."""
        with self._store_errors(f"get task {task_id}"):
            task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
            return task_db.to_pydantic() if task_db else None

    def list_tasks(self, user_id: str) -> List[Task]:
        """All tasks of a user, earliest due first."""
        with self._store_errors(f"list tasks for user {user_id}"):
            tasks_db = (
                self.db.query(TaskDB)
                .filter(TaskDB.user_id == user_id)
                .order_by(TaskDB.origin_datetime.asc(), TaskDB.created_at.asc())
                .all()
            )
            return [task_db.to_pydantic() for task_db in tasks_db]

    def update_task(self, task: Task) -> Task:
        """Update task fields, leaving its reminders untouched."""
        return self.update_task_with_reminders(task, None)

    def update_task_with_reminders(self, task: Task, reminders: Optional[List[Reminder]]) -> Task:
        """Update task fields and, when given, replace its reminders wholesale.

        ``task.version`` must match the stored version; the row is locked
        for the duration of the transaction where the backend supports it.
        """
        with self._store_errors(f"update task {task.id}"):
            task_db = self._task_row(task.user_id, task.id, for_update=True)
            self._check_version(task_db, task.version)
            task_db.apply_pydantic(task)
            if reminders is not None:
                task_db.reminders = [ReminderDB.from_pydantic(r) for r in reminders]
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task.id} to version {task_db.version}")
            return task_db.to_pydantic()

    def delete_task(self, user_id: str, task_id: str) -> None:
        """Delete a task; its reminders are deleted first in the same transaction."""
        with self._store_errors(f"delete task {task_id}"):
            task_db = self._task_row(user_id, task_id, for_update=True)
            # Orphaned reminders are flushed as DELETEs ahead of the task row.
            task_db.reminders = []
            self.db.flush()
            self.db.delete(task_db)
            self.db.commit()
            logger.debug(f"Deleted task {task_id}")

    # Reminders

    def create_reminders(self, user_id: str, task_id: str, reminders: List[Reminder]) -> List[Reminder]:
        """Attach reminders to an existing task in one transaction."""
        with self._store_errors(f"create reminders for task {task_id}"):
            task_db = self._task_row(user_id, task_id, for_update=True)
            rows = [ReminderDB.from_pydantic(r) for r in reminders]
            task_db.reminders.extend(rows)
            task_db.updated_at = to_naive_utc(utc_now())
            self.db.commit()
            logger.debug(f"Created {len(rows)} reminder(s) for task {task_id}")
            return [row.to_pydantic() for row in rows]

    def list_reminders(self, user_id: str, task_id: str) -> List[Reminder]:
        with self._store_errors(f"list reminders for task {task_id}"):
            task_db = self._task_row(user_id, task_id)
            return [r.to_pydantic() for r in task_db.reminders]

    def delete_reminders(self, user_id: str, task_id: str) -> int:
        """Delete every reminder of a task; returns how many were removed."""
        with self._store_errors(f"delete reminders for task {task_id}"):
            task_db = self._task_row(user_id, task_id, for_update=True)
            count = len(task_db.reminders)
            task_db.reminders = []
            task_db.updated_at = to_naive_utc(utc_now())
            self.db.commit()
            logger.debug(f"Deleted {count} reminder(s) for task {task_id}")
            return count

    def delete_reminder(self, user_id: str, reminder_id: str) -> None:
        with self._store_errors(f"delete reminder {reminder_id}"):
            reminder_db = (
                self.db.query(ReminderDB)
                .join(TaskDB, ReminderDB.task_id == TaskDB.id)
                .filter(ReminderDB.id == reminder_id, TaskDB.user_id == user_id)
                .first()
            )
            if reminder_db is None:
                raise NotFound(f"Reminder {reminder_id} not found")
            self.db.delete(reminder_db)
            self.db.commit()
            logger.debug(f"Deleted reminder {reminder_id}")

    def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        """Worker-side lookup without an owner scope."""
        with self._store_errors(f"get reminder {reminder_id}"):
            reminder_db = self.db.query(ReminderDB).filter(ReminderDB.id == reminder_id).first()
            return reminder_db.to_pydantic() if reminder_db else None

    def mark_reminder_sent(self, reminder_id: str, sent_at: Optional[datetime] = None) -> bool:
        """Flip ``sent`` to true if it is still false.

        Returns True only for the call that performed the transition.
        """
        sent_at = sent_at or utc_now()
        with self._store_errors(f"mark reminder {reminder_id} sent"):
            updated = (
                self.db.query(ReminderDB)
                .filter(ReminderDB.id == reminder_id, ReminderDB.sent.is_(False))
                .update(
                    {ReminderDB.sent: True, ReminderDB.sent_at: to_naive_utc(sent_at)},
                    synchronize_session=False,
                )
            )
            self.db.commit()
            if updated:
                logger.debug(f"Marked reminder {reminder_id} sent")
            return updated == 1

    def list_unsent_due_reminders(self, before: datetime, limit: int = 500) -> List[Tuple[Reminder, str]]:
        """Unsent reminders due at or before ``before``, paired with the owner ID."""
        with self._store_errors("list unsent due reminders"):
            rows = (
                self.db.query(ReminderDB, TaskDB.user_id)
                .join(TaskDB, ReminderDB.task_id == TaskDB.id)
                .filter(ReminderDB.sent.is_(False), ReminderDB.scheduled_at <= to_naive_utc(before))
                .order_by(ReminderDB.scheduled_at.asc())
                .limit(limit)
                .all()
            )
            return [(reminder_db.to_pydantic(), user_id) for reminder_db, user_id in rows]
