"""Channel adapter abstract base class.

All delivery channels (push, email, sms, in_app) implement this interface.
"""

from abc import ABC, abstractmethod

from infrastructure.identity import UserProfile
from infrastructure.notifications.models import DeliveryChannel, Notification
from infrastructure.operations import OperationResult


class ChannelAdapter(ABC):
    """Abstract base class for delivery channels.

    Each adapter sends one notification to one resident through one provider.
    Adapters must handle provider errors themselves and return a failed
    OperationResult rather than raising; the dispatcher still guards against
    unexpected exceptions.

    Success results carry::

        data={
            "provider": "fcm",
            "provider_message_id": "projects/p/messages/123",
            "delivered": True,   # provider confirmed delivery synchronously
        }

    Example Implementation:
        class InAppChannel(ChannelAdapter):

            @property
            def channel(self) -> DeliveryChannel:
                return DeliveryChannel.IN_APP

            def send(self, notification, user) -> OperationResult:
                return self.sent(notification.id, delivered=True)
    """

    provider_name: str = "unknown"

    @property
    @abstractmethod
    def channel(self) -> DeliveryChannel:
        """Channel served by this adapter."""

    @abstractmethod
    def send(self, notification: Notification, user: UserProfile) -> OperationResult:
        """Deliver a notification to a resident.

        Args:
            notification: Notification to deliver
            user: Recipient profile

        Returns:
            OperationResult; on success ``data`` holds provider, provider_message_id
            and delivered
        """

    @abstractmethod
    def resolve_recipient(self, user: UserProfile) -> OperationResult:
        """Resolve the channel address for a resident.

        Returns:
            - Success: OperationResult(data={"address": ...})
            - Missing address: OperationResult(PERMANENT_ERROR, error_code="MISSING_*")
        """

    def health_check(self) -> OperationResult:
        """Check provider configuration and connectivity."""
        return OperationResult.success(message=f"{self.channel.value} channel ready")

    def sent(
        self, provider_message_id: str | None, delivered: bool
    ) -> OperationResult:
        """Build a success result for this adapter's provider."""
        return OperationResult.success(
            data={
                "provider": self.provider_name,
                "provider_message_id": provider_message_id,
                "delivered": delivered,
            },
            message=f"Sent via {self.provider_name}",
        )
