"""Tests for reminder construction and enqueueing."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from rytetime.engine.reminder_scheduler import (
    ReminderScheduler,
    build_reminders,
    compute_scheduled_at,
    validate_offset,
)
from rytetime.errors import InvalidOffset, QueueUnavailable
from rytetime.models.task import NotificationType, ReminderRequest, Task
from rytetime.models.task_factory import create_task_base

DUE = datetime(2025, 3, 9, 10, 0, tzinfo=timezone.utc)


class TestOffsetCorrectness:
    @pytest.mark.parametrize("zone", ["UTC", "America/New_York", "Asia/Tokyo", "Australia/Adelaide"])
    def test_scheduled_at_is_independent_of_origin_zone(self, zone, test_user_id):
        task = create_task_base(test_user_id, "Call", DUE, zone)

        reminders = build_reminders(task, [ReminderRequest(offset_minutes=30, type=NotificationType.EMAIL)])

        assert reminders[0].scheduled_at == datetime(2025, 3, 9, 9, 30, tzinfo=timezone.utc)

    def test_offset_across_dst_gap_uses_absolute_time(self):
        # 07:00Z is 03:00 EDT, right after New York skips 02:00-03:00.
        due = datetime(2025, 3, 9, 7, 0, tzinfo=timezone.utc)
        assert compute_scheduled_at(due, 90) == datetime(2025, 3, 9, 5, 30, tzinfo=timezone.utc)

    def test_zero_offset_fires_at_due_time(self):
        assert compute_scheduled_at(DUE, 0) == DUE

    def test_past_scheduled_time_is_accepted(self, test_user_id):
        task = create_task_base(test_user_id, "Old", datetime(2000, 1, 1, tzinfo=timezone.utc), "UTC")
        reminders = build_reminders(task, [ReminderRequest(offset_minutes=10, type=NotificationType.SMS)])
        assert reminders[0].scheduled_at == datetime(1999, 12, 31, 23, 50, tzinfo=timezone.utc)


class TestOffsetValidation:
    @pytest.mark.parametrize("offset", [-1, -30])
    def test_negative_offset_rejected(self, offset):
        with pytest.raises(InvalidOffset):
            validate_offset(offset)

    @pytest.mark.parametrize("offset", [1.5, "30", True, None])
    def test_non_integer_offset_rejected(self, offset):
        with pytest.raises(InvalidOffset):
            validate_offset(offset)

    def test_one_bad_offset_rejects_whole_set(self, sample_task):
        requests = [
            ReminderRequest(offset_minutes=30, type=NotificationType.EMAIL),
            ReminderRequest(offset_minutes=-5, type=NotificationType.EMAIL),
        ]
        with pytest.raises(InvalidOffset):
            build_reminders(sample_task, requests)


class TestReminderScheduler:
    def test_enqueue_pushes_one_job_per_reminder(self, sample_task, memory_queue, test_user_id):
        reminders = build_reminders(sample_task, [
            ReminderRequest(offset_minutes=30, type=NotificationType.EMAIL),
            ReminderRequest(offset_minutes=60, type=NotificationType.PUSH),
        ])

        job_ids = ReminderScheduler(memory_queue).enqueue(reminders, test_user_id)

        assert len(job_ids) == 2
        assert memory_queue.pending_reminder_ids() == {r.id for r in reminders}
        jobs = memory_queue.peek_batch(10)
        assert [j.reminder_id for j in jobs] == [r.id for r in reminders]
        assert all(j.user_id == test_user_id for j in jobs)

    def test_sent_reminders_are_not_enqueued(self, sample_task, memory_queue, test_user_id):
        reminder = build_reminders(sample_task, [ReminderRequest(offset_minutes=30, type=NotificationType.EMAIL)])[0]

        assert ReminderScheduler(memory_queue).enqueue([reminder.model_copy(update={"sent": True})], test_user_id) == []
        assert memory_queue.size() == 0

    def test_queue_failure_is_logged_not_raised(self, sample_task, test_user_id, caplog):
        queue = MagicMock()
        queue.push.side_effect = QueueUnavailable("connection refused")
        reminders = build_reminders(sample_task, [ReminderRequest(offset_minutes=30, type=NotificationType.EMAIL)])

        assert ReminderScheduler(queue).enqueue(reminders, test_user_id) == []
        assert "left for reconciliation" in caplog.text
