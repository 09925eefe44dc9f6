"""Push reminders through an HTTP push gateway."""

import logging
from typing import Optional

import requests

from rytetime.channels.base import ChannelDispatcher, render_message, render_subject
from rytetime.models.constants import DISPATCH_TIMEOUT_SECONDS, PUSH_GATEWAY_TOKEN, PUSH_GATEWAY_URL
from rytetime.models.task import NotificationType, Reminder, Task
from rytetime.models.user import User

logger = logging.getLogger(__name__)


class PushDispatcher(ChannelDispatcher):
    notify_type = NotificationType.PUSH

    def __init__(
        self,
        gateway_url: str = PUSH_GATEWAY_URL,
        token: str = PUSH_GATEWAY_TOKEN,
        timeout: float = DISPATCH_TIMEOUT_SECONDS,
    ):
        if not gateway_url:
            raise ValueError("PUSH_GATEWAY_URL is required for push reminders")
        self.gateway_url = gateway_url
        self.token = token
        self.timeout = timeout

    def send(self, reminder: Reminder, task: Task, user: Optional[User]) -> bool:
        if user is None or not user.push_token:
            logger.warning(f"No push token for reminder {reminder.id}")
            return False
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        payload = {
            "to": user.push_token,
            "title": render_subject(task),
            "body": render_message(reminder, task),
            "data": {"task_id": task.id, "reminder_id": reminder.id},
        }
        try:
            response = requests.post(self.gateway_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Push request failed for reminder {reminder.id}: {type(e).__name__}")
            return False
        if not response.ok:
            logger.warning(f"Push gateway rejected reminder {reminder.id}: HTTP {response.status_code}")
            return False
        logger.info(f"Sent push reminder {reminder.id} for task {task.id}")
        return True
