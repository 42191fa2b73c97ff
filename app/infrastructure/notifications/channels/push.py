"""Push channel implementation using Firebase Cloud Messaging."""

import json
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from infrastructure.identity import UserProfile
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import ChannelAdapter
from infrastructure.notifications.models import (
    DeliveryChannel,
    Notification,
    NotificationPriority,
    NotificationType,
)
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from integrations.fcm import FcmClient

logger = get_module_logger()

ANDROID_PRIORITY = {
    NotificationPriority.LOW: "low",
    NotificationPriority.NORMAL: "default",
    NotificationPriority.HIGH: "high",
    NotificationPriority.URGENT: "max",
}

ANDROID_CHANNEL_IDS = {
    NotificationType.RESERVATION_CONFIRMATION: "reservations",
    NotificationType.RESERVATION_UPDATE: "reservations",
    NotificationType.RESERVATION_CANCELLATION: "reservations",
    NotificationType.RESERVATION_REMINDER: "reservations",
    NotificationType.MEETING_SCHEDULED: "meetings",
    NotificationType.MEETING_UPDATED: "meetings",
    NotificationType.MEETING_CANCELLED: "meetings",
    NotificationType.MEETING_RESCHEDULED: "meetings",
    NotificationType.MEETING_NOTES_PUBLISHED: "meetings",
    NotificationType.VOTE_CREATED: "voting",
    NotificationType.VOTE_CLOSED: "voting",
    NotificationType.AGREEMENT_ACTIVATED: "agreements",
    NotificationType.PAYMENT_DUE: "payments",
    NotificationType.PAYMENT_OVERDUE: "payments",
    NotificationType.PAYMENT_CONFIRMED: "payments",
    NotificationType.SYSTEM_ANNOUNCEMENT: "system",
}
DEFAULT_ANDROID_CHANNEL = "general"


def stringify_data(data: Dict[str, Any]) -> Dict[str, str]:
    """FCM data values must be strings; everything else is JSON encoded."""
    return {
        str(key): value if isinstance(value, str) else json.dumps(value, default=str)
        for key, value in data.items()
    }


def build_message(notification: Notification, token: str, badge: int) -> Dict[str, Any]:
    """Build the FCM HTTP v1 message for a notification."""
    android_priority = ANDROID_PRIORITY[notification.priority]
    return {
        "token": token,
        "notification": {"title": notification.title, "body": notification.body},
        "data": stringify_data(notification.data),
        "android": {
            "priority": "high"
            if notification.priority
            in (NotificationPriority.HIGH, NotificationPriority.URGENT)
            else "normal",
            "notification": {
                "channel_id": ANDROID_CHANNEL_IDS.get(
                    notification.type, DEFAULT_ANDROID_CHANNEL
                ),
                "notification_priority": f"PRIORITY_{android_priority.upper()}",
                "sound": "default",
                "icon": "ic_notification",
                "color": "#2196F3",
            },
        },
        "apns": {
            "payload": {
                "aps": {
                    "badge": badge,
                    "sound": "default",
                    "category": notification.type.value,
                }
            }
        },
    }


class PushChannel(ChannelAdapter):
    """Push notification channel using FCM.

    FCM accepting the message is recorded as delivered; there is no later
    receipt for push.

    Args:
        client: FcmClient used to send messages
        unread_counter: Returns the resident's unread count for the iOS badge
    """

    provider_name = "fcm"

    def __init__(
        self,
        client: "FcmClient",
        unread_counter: Optional[Callable[[str], int]] = None,
    ):
        self._client = client
        self._unread_counter = unread_counter or (lambda user_id: 0)

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.PUSH

    def resolve_recipient(self, user: UserProfile) -> OperationResult:
        if not user.push_token:
            return OperationResult.permanent_error(
                message="User has no push token",
                error_code="MISSING_PUSH_TOKEN",
            )
        return OperationResult.success(data={"address": user.push_token})

    def send(self, notification: Notification, user: UserProfile) -> OperationResult:
        resolved = self.resolve_recipient(user)
        if not resolved.is_success:
            return resolved

        message = build_message(
            notification,
            token=resolved.data["address"],
            badge=self._unread_counter(notification.user_id),
        )
        result = self._client.send(message)
        if not result.is_success:
            logger.warning(
                "push_send_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        return self.sent(result.data.get("message_id"), delivered=True)

    def health_check(self) -> OperationResult:
        return self._client.health_check()
