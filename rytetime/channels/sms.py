"""SMS reminders through the Twilio REST API."""

import logging
from typing import Optional

import requests

from rytetime.channels.base import ChannelDispatcher, render_message
from rytetime.models.constants import (
    DISPATCH_TIMEOUT_SECONDS,
    TWILIO_ACCOUNT_SID,
    TWILIO_API_BASE,
    TWILIO_AUTH_TOKEN,
    TWILIO_FROM_NUMBER,
)
from rytetime.models.task import NotificationType, Reminder, Task
from rytetime.models.user import User

logger = logging.getLogger(__name__)


class SmsDispatcher(ChannelDispatcher):
    notify_type = NotificationType.SMS

    def __init__(
        self,
        account_sid: str = TWILIO_ACCOUNT_SID,
        auth_token: str = TWILIO_AUTH_TOKEN,
        from_number: str = TWILIO_FROM_NUMBER,
        timeout: float = DISPATCH_TIMEOUT_SECONDS,
    ):
        if not (account_sid and auth_token and from_number):
            raise ValueError("TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER are required for SMS reminders")
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    @property
    def messages_url(self) -> str:
        return f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"

    def send(self, reminder: Reminder, task: Task, user: Optional[User]) -> bool:
        if user is None or not user.phone:
            logger.warning(f"No phone number for reminder {reminder.id}")
            return False
        try:
            response = requests.post(
                self.messages_url,
                data={"From": self.from_number, "To": user.phone, "Body": render_message(reminder, task)},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"SMS request failed for reminder {reminder.id}: {type(e).__name__}")
            return False
        if not response.ok:
            logger.warning(f"SMS provider rejected reminder {reminder.id}: HTTP {response.status_code}")
            return False
        logger.info(f"Sent SMS reminder {reminder.id} for task {task.id}")
        return True
