"""Email reminders through the Resend HTTP API."""

import html
import logging
from typing import Optional

import requests

from rytetime.channels.base import ChannelDispatcher, render_due_time, render_subject
from rytetime.models.constants import DISPATCH_TIMEOUT_SECONDS, EMAIL_FROM, RESEND_API_KEY, RESEND_API_URL
from rytetime.models.task import NotificationType, Reminder, Task
from rytetime.models.user import User

logger = logging.getLogger(__name__)


def render_email_html(reminder: Reminder, task: Task) -> str:
    parts = [
        f"<h2>Reminder: {html.escape(task.title)}</h2>",
        f"<p>Your task is due {reminder.notify_offset_minutes} minutes from now.</p>",
    ]
    if task.description:
        parts.append(f"<p>{html.escape(task.description)}</p>")
    parts.append(f"<p>Due: {html.escape(render_due_time(task))}</p>")
    return "".join(parts)


class EmailDispatcher(ChannelDispatcher):
    notify_type = NotificationType.EMAIL

    def __init__(
        self,
        api_key: str = RESEND_API_KEY,
        from_address: str = EMAIL_FROM,
        api_url: str = RESEND_API_URL,
        timeout: float = DISPATCH_TIMEOUT_SECONDS,
    ):
        if not api_key:
            raise ValueError("RESEND_API_KEY is required for email reminders")
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url
        self.timeout = timeout

    def send(self, reminder: Reminder, task: Task, user: Optional[User]) -> bool:
        if user is None or not user.email:
            logger.warning(f"No email address for reminder {reminder.id}")
            return False
        payload = {
            "from": self.from_address,
            "to": [user.email],
            "subject": render_subject(task),
            "html": render_email_html(reminder, task),
        }
        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Email request failed for reminder {reminder.id}: {type(e).__name__}")
            return False
        if not response.ok:
            logger.warning(f"Email provider rejected reminder {reminder.id}: HTTP {response.status_code}")
            return False
        logger.info(f"Sent email reminder {reminder.id} for task {task.id}")
        return True
