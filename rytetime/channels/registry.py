"""Notification type to dispatcher lookup table."""

import logging
from functools import lru_cache
from typing import Dict, Union

from rytetime.channels.base import ChannelDispatcher
from rytetime.channels.console import ConsoleDispatcher
from rytetime.errors import DispatchFailure
from rytetime.models import constants
from rytetime.models.task import NotificationType

logger = logging.getLogger(__name__)


class DispatcherRegistry:
    """Maps each NotificationType to the dispatcher that delivers it."""

    def __init__(self) -> None:
        self._dispatchers: Dict[NotificationType, ChannelDispatcher] = {}

    def register(self, notify_type: Union[NotificationType, str], dispatcher: ChannelDispatcher) -> None:
        self._dispatchers[NotificationType(notify_type)] = dispatcher

    def get(self, notify_type: Union[NotificationType, str]) -> ChannelDispatcher:
        try:
            return self._dispatchers[NotificationType(notify_type)]
        except (KeyError, ValueError) as e:
            raise DispatchFailure(f"No dispatcher registered for {notify_type}") from e

    def __contains__(self, notify_type) -> bool:
        try:
            return NotificationType(notify_type) in self._dispatchers
        except ValueError:
            return False


def build_dispatcher_registry() -> DispatcherRegistry:
    """Registry with a real provider for each configured channel, console otherwise."""
    from rytetime.channels.email import EmailDispatcher
    from rytetime.channels.push import PushDispatcher
    from rytetime.channels.sms import SmsDispatcher

    registry = DispatcherRegistry()
    if constants.RESEND_API_KEY:
        registry.register(NotificationType.EMAIL, EmailDispatcher())
    else:
        registry.register(NotificationType.EMAIL, ConsoleDispatcher(NotificationType.EMAIL))
    if constants.TWILIO_ACCOUNT_SID and constants.TWILIO_AUTH_TOKEN and constants.TWILIO_FROM_NUMBER:
        registry.register(NotificationType.SMS, SmsDispatcher())
    else:
        registry.register(NotificationType.SMS, ConsoleDispatcher(NotificationType.SMS))
    if constants.PUSH_GATEWAY_URL:
        registry.register(NotificationType.PUSH, PushDispatcher())
    else:
        registry.register(NotificationType.PUSH, ConsoleDispatcher(NotificationType.PUSH))
    return registry


@lru_cache
def get_dispatcher_registry() -> DispatcherRegistry:
    return build_dispatcher_registry()
