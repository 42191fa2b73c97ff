"""In-app channel.

The notification document itself is the in-app inbox entry, so sending only
records a delivered attempt.
"""

from infrastructure.identity import UserProfile
from infrastructure.notifications.channels.base import ChannelAdapter
from infrastructure.notifications.models import DeliveryChannel, Notification
from infrastructure.operations import OperationResult


class InAppChannel(ChannelAdapter):
    provider_name = "in_app"

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.IN_APP

    def resolve_recipient(self, user: UserProfile) -> OperationResult:
        return OperationResult.success(data={"address": user.user_id})

    def send(self, notification: Notification, user: UserProfile) -> OperationResult:
        return self.sent(notification.id, delivered=True)
