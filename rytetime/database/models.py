"""SQLAlchemy database models for rytetime.

Datetimes are stored as naive UTC and converted to aware UTC on the way
out (see `rytetime.engine.timezones.as_utc`).
"""

from datetime import datetime
from typing import Optional, Type, TypeVar, Union
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from rytetime.database.database import Base
from rytetime.engine.timezones import as_utc, to_naive_utc
from rytetime.models.constants import DEFAULT_TIMEZONE
from rytetime.models.task import NotificationType, TaskPriority

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string)."""
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default."""
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def _naive(dt: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(dt) if dt is not None else None


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    return as_utc(dt) if dt is not None else None


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)

    # Profile and notification contacts
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    push_token = Column(String, nullable=True)
    timezone = Column(String, nullable=False, default=DEFAULT_TIMEZONE)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rytetime.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            phone=self.phone,
            push_token=self.push_token,
            timezone=self.timezone or DEFAULT_TIMEZONE,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            phone=user.phone,
            push_token=user.push_token,
            timezone=user.timezone,
            created_at=_naive(user.created_at),
            updated_at=_naive(user.updated_at),
        )


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    priority = Column(String, nullable=False, default=TaskPriority.MEDIUM.value)
    tags = Column(JSON, nullable=False, default=list)
    recurrence_rule = Column(String, nullable=True)

    # Authoritative due instant and the zone it was entered in
    origin_datetime = Column(DateTime, nullable=False, index=True)
    origin_timezone = Column(String, nullable=False)

    # Advisory wall-clock view captured at write time
    local_datetime = Column(DateTime, nullable=True)
    local_timezone = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    version = Column(Integer, nullable=False, default=1)

    reminders = relationship(
        "ReminderDB",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="ReminderDB.scheduled_at",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_pydantic(self):
        """Convert database model to Pydantic model (reminders embedded)."""
        from rytetime.models.task import Task
        return Task(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            description=self.description,
            priority=value_to_enum(self.priority, TaskPriority, TaskPriority.MEDIUM),
            tags=list(self.tags or []),
            recurrence_rule=self.recurrence_rule,
            origin_datetime=_aware(self.origin_datetime),
            origin_timezone=self.origin_timezone,
            local_datetime=self.local_datetime,
            local_timezone=self.local_timezone,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
            version=self.version,
            reminders=[r.to_pydantic() for r in self.reminders],
        )

    def apply_pydantic(self, task) -> None:
        """Copy mutable task fields onto this row (reminders excluded)."""
        self.title = task.title
        self.description = task.description
        self.priority = enum_to_value(task.priority)
        self.tags = list(task.tags)
        self.recurrence_rule = task.recurrence_rule
        self.origin_datetime = _naive(task.origin_datetime)
        self.origin_timezone = task.origin_timezone
        self.local_datetime = task.local_datetime
        self.local_timezone = task.local_timezone
        self.updated_at = _naive(task.updated_at)

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model (reminders excluded)."""
        row = cls(id=task.id, user_id=task.user_id, created_at=_naive(task.created_at))
        row.apply_pydantic(task)
        return row


class ReminderDB(Base):
    """Database model for Reminder."""

    __tablename__ = "reminders"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)

    notify_offset_minutes = Column(Integer, nullable=False)
    notify_type = Column(String, nullable=False)
    scheduled_at = Column(DateTime, nullable=False, index=True)

    # Delivery state; only ever moves from False to True
    sent = Column(Boolean, nullable=False, default=False, index=True)
    sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    task = relationship("TaskDB", back_populates="reminders")

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from rytetime.models.task import Reminder
        return Reminder(
            id=self.id,
            task_id=self.task_id,
            notify_offset_minutes=self.notify_offset_minutes,
            notify_type=value_to_enum(self.notify_type, NotificationType, NotificationType.EMAIL),
            scheduled_at=_aware(self.scheduled_at),
            sent=bool(self.sent),
            sent_at=_aware(self.sent_at),
            created_at=_aware(self.created_at),
        )

    @classmethod
    def from_pydantic(cls, reminder):
        """Create database model from Pydantic model."""
        return cls(
            id=reminder.id,
            task_id=reminder.task_id,
            notify_offset_minutes=reminder.notify_offset_minutes,
            notify_type=enum_to_value(reminder.notify_type),
            scheduled_at=_naive(reminder.scheduled_at),
            sent=reminder.sent,
            sent_at=_naive(reminder.sent_at),
            created_at=_naive(reminder.created_at),
        )
