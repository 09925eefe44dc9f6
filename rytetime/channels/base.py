"""Channel dispatcher contract and shared message rendering."""

from abc import ABC, abstractmethod
from typing import Optional

from rytetime.engine.timezones import to_zoned_time
from rytetime.models.task import NotificationType, Reminder, Task
from rytetime.models.user import User


class ChannelDispatcher(ABC):
    """Delivers one reminder over one channel.

    ``send`` returns True on accepted delivery and False on provider
    errors. It must not raise for provider failures.
    """

    notify_type: NotificationType

    @abstractmethod
    def send(self, reminder: Reminder, task: Task, user: Optional[User]) -> bool:
        pass


def render_subject(task: Task) -> str:
    return f"Task Reminder: {task.title}"


def render_due_time(task: Task) -> str:
    """Due time as the user entered it, in the origin zone."""
    zoned = to_zoned_time(task.origin_datetime, task.origin_timezone)
    return f"{zoned.strftime('%Y-%m-%d %H:%M')} ({task.origin_timezone})"


def render_message(reminder: Reminder, task: Task) -> str:
    """Plain-text reminder body."""
    lines = [f'Your task "{task.title}" is due {reminder.notify_offset_minutes} minutes from now.']
    if task.description:
        lines.append(task.description)
    lines.append(f"Due: {render_due_time(task)}")
    return "\n".join(lines)
