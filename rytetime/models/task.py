"""Task and Reminder data models for rytetime."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from rytetime.engine.timezones import as_utc


class TaskPriority(str, Enum):
    """Task priority enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationType(str, Enum):
    """Delivery channel for a reminder."""
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class Reminder(BaseModel):
    """A pending or delivered notification attached to a task."""

    id: str = Field(..., description="Unique reminder identifier (UUID v4)")
    task_id: str = Field(..., description="Owning task ID")
    notify_offset_minutes: int = Field(..., ge=0, description="Minutes before the task's due instant")
    notify_type: NotificationType = Field(..., description="Delivery channel")
    scheduled_at: datetime = Field(..., description="Instant at which the reminder becomes due (UTC)")
    sent: bool = Field(False, description="Whether the reminder has been delivered")
    sent_at: Optional[datetime] = Field(None, description="Delivery timestamp")
    created_at: datetime = Field(..., description="Reminder creation timestamp")

    @field_validator("scheduled_at", "sent_at", "created_at")
    @classmethod
    def _normalize_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class ReminderRequest(BaseModel):
    """Client request for one reminder (offset validated by the scheduler)."""

    offset_minutes: int = Field(..., description="Minutes before the task's due instant")
    type: NotificationType = Field(..., description="Delivery channel")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class Task(BaseModel):
    """Canonical Task model.

    ``origin_datetime`` is the absolute due instant (aware UTC) and
    ``origin_timezone`` the zone the user entered it in; together they are
    authoritative. ``local_datetime``/``local_timezone`` are the creating
    user's wall-clock view, captured at write time and never recomputed
    on read.
    """

    id: str = Field(..., description="Unique task identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this task")
    title: str = Field(..., min_length=1, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    tags: List[str] = Field(default_factory=list, description="Tag set (unique, sorted)")
    recurrence_rule: Optional[str] = Field(None, description="Opaque recurrence rule (RRULE text)")
    origin_datetime: datetime = Field(..., description="Due instant (UTC)")
    origin_timezone: str = Field(..., description="IANA zone the due time was specified in")
    local_datetime: Optional[datetime] = Field(None, description="Advisory wall-clock due time in local_timezone")
    local_timezone: Optional[str] = Field(None, description="Advisory viewer zone")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")
    version: int = Field(1, description="Optimistic concurrency counter")
    reminders: List[Reminder] = Field(default_factory=list, description="Reminders owned by this task")

    @field_validator("origin_datetime", "created_at", "updated_at")
    @classmethod
    def _normalize_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, v: List[str]) -> List[str]:
        return sorted({tag.strip() for tag in v if tag and tag.strip()})

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
