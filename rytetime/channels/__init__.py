"""Notification channels."""

from rytetime.channels.base import ChannelDispatcher, render_message
from rytetime.channels.console import ConsoleDispatcher
from rytetime.channels.registry import DispatcherRegistry, build_dispatcher_registry, get_dispatcher_registry

__all__ = [
    "ChannelDispatcher",
    "ConsoleDispatcher",
    "DispatcherRegistry",
    "build_dispatcher_registry",
    "get_dispatcher_registry",
    "render_message",
]
