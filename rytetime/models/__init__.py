"""Data models for rytetime."""

from rytetime.models.task import Task, Reminder, ReminderRequest, TaskPriority, NotificationType
from rytetime.models.job import DeliveryJob
from rytetime.models.user import User

__all__ = [
    "Task",
    "Reminder",
    "ReminderRequest",
    "TaskPriority",
    "NotificationType",
    "DeliveryJob",
    "User",
]
