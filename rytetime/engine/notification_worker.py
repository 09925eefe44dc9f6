"""Notification worker: one externally triggered delivery cycle at a time.

The worker keeps no state between cycles. The queue only hints at what
might be due; the reminder row in the store is authoritative, and its
``sent`` flag is the barrier that keeps concurrent or repeated cycles
from delivering the same reminder twice.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rytetime.cache.icache import ITaskCache
from rytetime.channels.base import ChannelDispatcher
from rytetime.channels.registry import DispatcherRegistry
from rytetime.database.repository import TaskRepository
from rytetime.database.user_repository import UserRepository
from rytetime.engine.timezones import as_utc, utc_now
from rytetime.errors import CacheUnavailable, DispatchFailure
from rytetime.models.constants import (
    DISPATCH_MAX_WORKERS,
    DISPATCH_TIMEOUT_SECONDS,
    WORKER_BATCH_SIZE,
    WORKER_MAX_SCAN_PAGES,
)
from rytetime.models.job import DeliveryJob
from rytetime.models.task import Reminder, Task
from rytetime.models.user import User
from rytetime.queue.iqueue import INotificationQueue

logger = logging.getLogger(__name__)

# Single-flight guard shared by every worker in this process.
_cycle_lock = threading.Lock()

# Shared by every worker so hung provider calls hold at most DISPATCH_MAX_WORKERS threads.
# A send that outlives its timeout keeps running; its result is discarded and the
# job stays queued, so a late success can still be delivered again on retry.
_dispatch_pool = ThreadPoolExecutor(max_workers=DISPATCH_MAX_WORKERS, thread_name_prefix="dispatch")


class JobOutcome(str, Enum):
    SENT = "sent"
    STALE = "stale"
    NOT_DUE = "not_due"
    FAILED = "failed"
    # delivered, but another worker marked the reminder sent first
    DUPLICATE = "duplicate"


class WorkerCycleResult(BaseModel):
    """Summary of one run_cycle call."""

    processed_count: int = Field(0, description="Jobs delivered in this cycle")
    job_ids: List[str] = Field(default_factory=list, description="IDs of the delivered jobs")
    removed_count: int = Field(0, description="Stale jobs removed without delivery")
    failed_count: int = Field(0, description="Jobs whose delivery failed and stay queued")
    deferred_count: int = Field(0, description="Jobs not yet due")
    duplicate_count: int = Field(0, description="Jobs another worker had already recorded as sent")
    skipped: bool = Field(False, description="True when another cycle was already running")


class NotificationWorker:
    def __init__(
        self,
        db: Session,
        queue: INotificationQueue,
        dispatchers: DispatcherRegistry,
        cache: Optional[ITaskCache] = None,
        batch_size: int = WORKER_BATCH_SIZE,
        dispatch_timeout_sec: float = DISPATCH_TIMEOUT_SECONDS,
        max_scan_pages: int = WORKER_MAX_SCAN_PAGES,
    ):
        self.repository = TaskRepository(db)
        self.users = UserRepository(db)
        self.queue = queue
        self.dispatchers = dispatchers
        self.cache = cache
        self.batch_size = batch_size
        self.dispatch_timeout_sec = dispatch_timeout_sec
        self.max_scan_pages = max(1, max_scan_pages)

    def run_cycle(self, now: Optional[datetime] = None) -> WorkerCycleResult:
        """Deliver due jobs from the head of the queue.

        Reads the queue a batch at a time. Jobs that are not yet due stay
        where they are and the scan moves past them, up to
        ``max_scan_pages`` batches, until ``batch_size`` jobs have been
        delivered or the queue is exhausted. Each job is handled in
        isolation; an error on one job never aborts the others.
        """
        if not _cycle_lock.acquire(blocking=False):
            logger.info("Worker cycle already running in this process, skipping")
            return WorkerCycleResult(skipped=True)
        try:
            return self._run_cycle(as_utc(now) if now else utc_now())
        finally:
            _cycle_lock.release()

    def _run_cycle(self, now: datetime) -> WorkerCycleResult:
        result = WorkerCycleResult()
        offset = 0
        for _ in range(self.max_scan_pages):
            # peek_batch drops malformed payloads, so a short page does not mean the end.
            if offset >= self.queue.size():
                break
            jobs = self.queue.peek_batch(self.batch_size, offset)
            left_in_place = 0
            for job in jobs:
                try:
                    outcome = self.process_job(job, now)
                except Exception:
                    logger.exception(f"Unexpected error processing job {job.job_id}")
                    outcome = JobOutcome.FAILED

                if outcome == JobOutcome.SENT:
                    result.processed_count += 1
                    result.job_ids.append(job.job_id)
                elif outcome == JobOutcome.STALE:
                    result.removed_count += 1
                elif outcome == JobOutcome.DUPLICATE:
                    result.duplicate_count += 1
                elif outcome == JobOutcome.NOT_DUE:
                    result.deferred_count += 1
                    left_in_place += 1
                else:
                    result.failed_count += 1
                    left_in_place += 1
            if result.processed_count >= self.batch_size:
                break
            offset += left_in_place

        logger.info(
            f"Worker cycle: {result.processed_count} sent, {result.removed_count} stale, "
            f"{result.failed_count} failed, {result.deferred_count} not yet due, {result.duplicate_count} duplicate"
        )
        return result

    def process_job(self, job: DeliveryJob, now: Optional[datetime] = None) -> JobOutcome:
        """Handle one queued job against the current state of its reminder."""
        now = as_utc(now) if now else utc_now()
        reminder = self.repository.get_reminder(job.reminder_id)
        if reminder is None or reminder.sent:
            self.queue.remove(job)
            logger.debug(f"Removed stale job {job.job_id} for reminder {job.reminder_id}")
            return JobOutcome.STALE
        if reminder.scheduled_at > now:
            return JobOutcome.NOT_DUE

        task = self.repository.get_task_by_id(reminder.task_id)
        if task is None:
            self.queue.remove(job)
            return JobOutcome.STALE
        user = self.users.get(task.user_id)

        try:
            dispatcher = self.dispatchers.get(reminder.notify_type)
            delivered = self._dispatch(dispatcher, reminder, task, user)
        except DispatchFailure as e:
            logger.warning(f"Dispatch failed for reminder {reminder.id} ({reminder.notify_type}): {e}")
            return JobOutcome.FAILED
        if not delivered:
            logger.warning(f"Channel {reminder.notify_type} did not deliver reminder {reminder.id}, keeping job")
            return JobOutcome.FAILED

        won = self.repository.mark_reminder_sent(reminder.id, now)
        self._invalidate(task.user_id)
        self.queue.remove(job)
        if not won:
            logger.info(f"Reminder {reminder.id} was marked sent by another worker")
            return JobOutcome.DUPLICATE
        return JobOutcome.SENT

    def _dispatch(self, dispatcher: ChannelDispatcher, reminder: Reminder, task: Task, user: Optional[User]) -> bool:
        """Run ``dispatcher.send`` bounded by the dispatch timeout."""
        future = _dispatch_pool.submit(dispatcher.send, reminder, task, user)
        try:
            return bool(future.result(timeout=self.dispatch_timeout_sec))
        except FuturesTimeoutError as e:
            # not started yet when every pool thread is busy
            future.cancel()
            raise DispatchFailure(f"timed out after {self.dispatch_timeout_sec}s") from e
        except Exception as e:
            logger.exception(f"Dispatcher raised for reminder {reminder.id}")
            raise DispatchFailure(f"{type(e).__name__}: {e}") from e

    def _invalidate(self, user_id: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.invalidate(user_id)
        except CacheUnavailable as e:
            logger.warning(f"Cache invalidation failed for user {user_id}: {e}")

    def status(self) -> dict:
        return {
            "running": _cycle_lock.locked(),
            "queue_depth": self.queue.size(),
            "batch_size": self.batch_size,
            "dispatch_timeout_sec": self.dispatch_timeout_sec,
        }
