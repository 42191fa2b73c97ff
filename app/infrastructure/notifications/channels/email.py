"""Email channel implementation using GC Notify."""

from typing import TYPE_CHECKING

from infrastructure.identity import UserProfile
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter
from infrastructure.notifications.models import DeliveryChannel, Notification
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from integrations.notify import NotifyClient

logger = get_module_logger()


class EmailChannel(ChannelAdapter):
    """Email notification channel using GC Notify.

    Acceptance by GC Notify is recorded as ``sent``; the delivery receipt
    callback later appends a ``delivered`` transition to the log.
    """

    provider_name = "gc_notify"

    def __init__(self, client: "NotifyClient"):
        self._client = client

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.EMAIL

    def resolve_recipient(self, user: UserProfile) -> OperationResult:
        if not user.email:
            return OperationResult.permanent_error(
                message="User has no email address",
                error_code="MISSING_EMAIL",
            )
        # Format already validated by EmailStr on the profile
        return OperationResult.success(data={"address": str(user.email)})

    def send(self, notification: Notification, user: UserProfile) -> OperationResult:
        resolved = self.resolve_recipient(user)
        if not resolved.is_success:
            return resolved

        result = self._client.send_email(
            email_address=resolved.data["address"],
            personalisation={"title": notification.title, "body": notification.body},
            reference=notification.id,
        )
        if not result.is_success:
            logger.warning(
                "email_send_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        return self.sent(result.data.get("notification_id"), delivered=False)

    def health_check(self) -> OperationResult:
        return self._client.health_check()
