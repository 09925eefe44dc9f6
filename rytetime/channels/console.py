"""Channel stand-in that logs reminders instead of delivering them."""

import logging
from typing import Optional

from rytetime.channels.base import ChannelDispatcher, render_message
from rytetime.models.task import NotificationType, Reminder, Task
from rytetime.models.user import User

logger = logging.getLogger(__name__)


class ConsoleDispatcher(ChannelDispatcher):
    def __init__(self, notify_type: NotificationType):
        self.notify_type = NotificationType(notify_type)
        logger.warning(f"Using console for {self.notify_type.value} reminders, nothing will be delivered")

    def send(self, reminder: Reminder, task: Task, user: Optional[User]) -> bool:
        recipient = user.id if user else "unknown"
        logger.info(f"[{self.notify_type.value}] to {recipient}: {render_message(reminder, task)}")
        return True
