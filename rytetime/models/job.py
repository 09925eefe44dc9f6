"""Queued delivery job model.

A job is a snapshot of a reminder at enqueue time. The worker treats it
as a hint only and always re-reads the reminder from the store before
dispatching.
"""

import json
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, PrivateAttr

from rytetime.engine.timezones import utc_now
from rytetime.models.task import NotificationType, Reminder


class DeliveryJob(BaseModel):
    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    reminder_id: str
    task_id: str
    user_id: str
    notify_type: NotificationType
    scheduled_at: datetime
    enqueued_at: datetime = Field(default_factory=utc_now)

    # Exact payload read from the queue; removal must match it byte for byte.
    _raw: Optional[str] = PrivateAttr(default=None)

    class Config:
        use_enum_values = True

    @classmethod
    def for_reminder(cls, reminder: Reminder, user_id: str) -> "DeliveryJob":
        return cls(
            reminder_id=reminder.id,
            task_id=reminder.task_id,
            user_id=user_id,
            notify_type=reminder.notify_type,
            scheduled_at=reminder.scheduled_at,
        )

    def to_json(self) -> str:
        if self._raw is not None:
            return self._raw
        return json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> "DeliveryJob":
        job = cls.model_validate_json(raw)
        job._raw = raw
        return job
