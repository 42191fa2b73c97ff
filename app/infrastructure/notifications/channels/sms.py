"""SMS channel implementation using GC Notify."""

from typing import TYPE_CHECKING

from infrastructure.identity import UserProfile
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter
from infrastructure.notifications.models import DeliveryChannel, Notification
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from integrations.notify import NotifyClient

logger = get_module_logger()

# GC Notify SMS limit
MAX_SMS_LENGTH = 612


def format_sms(title: str, body: str) -> str:
    message = f"{title}: {body}" if title else body
    if len(message) > MAX_SMS_LENGTH:
        message = message[: MAX_SMS_LENGTH - 3] + "..."
    return message


class SmsChannel(ChannelAdapter):
    """SMS notification channel using GC Notify.

    Requires an E.164 phone number on the resident profile.
    """

    provider_name = "gc_notify"

    def __init__(self, client: "NotifyClient"):
        self._client = client

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.SMS

    def resolve_recipient(self, user: UserProfile) -> OperationResult:
        if not user.phone_number:
            return OperationResult.permanent_error(
                message="User has no phone number",
                error_code="MISSING_PHONE",
            )
        return OperationResult.success(data={"address": user.phone_number})

    def send(self, notification: Notification, user: UserProfile) -> OperationResult:
        resolved = self.resolve_recipient(user)
        if not resolved.is_success:
            return resolved

        result = self._client.send_sms(
            phone_number=resolved.data["address"],
            personalisation={
                "title": notification.title,
                "body": format_sms(notification.title, notification.body),
            },
            reference=notification.id,
        )
        if not result.is_success:
            logger.warning(
                "sms_send_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        return self.sent(result.data.get("notification_id"), delivered=False)

    def health_check(self) -> OperationResult:
        return self._client.health_check()
