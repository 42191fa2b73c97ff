"""Delivery channel adapters."""

from infrastructure.notifications.channels.base import ChannelAdapter
from infrastructure.notifications.channels.email import EmailChannel
from infrastructure.notifications.channels.in_app import InAppChannel
from infrastructure.notifications.channels.push import PushChannel
from infrastructure.notifications.channels.registry import ChannelAdapterRegistry
from infrastructure.notifications.channels.sms import SmsChannel

__all__ = [
    "ChannelAdapter",
    "ChannelAdapterRegistry",
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
    "SmsChannel",
]
