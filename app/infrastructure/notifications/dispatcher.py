"""Channel dispatcher: one notification, every effective channel.

Centralized delivery step that:
- Fails notifications for missing or inactive residents
- Cancels expired notifications and types the resident switched off
- Defers delivery that falls in the resident's quiet hours
- Fans out to all effective channels concurrently, isolating each attempt
- Aggregates the attempts into the notification's status, handing total
  failures to the RetryScheduler

The dispatcher does not persist anything. The orchestrator writes the
returned notification state and delivery logs.

Usage Example:
    dispatcher = ChannelDispatcher(registry, resolver, retry_scheduler)
    outcome = dispatcher.dispatch(notification, user, prefs, now)
    outcome.action   # DispatchAction.SENT
    outcome.logs     # one DeliveryLog per attempted channel
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import List, Optional

from infrastructure.identity import UserProfile
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels import ChannelAdapterRegistry
from infrastructure.notifications.models import (
    DeliveryChannel,
    DeliveryLog,
    DeliveryStatus,
    DispatchAction,
    DispatchOutcome,
    Notification,
    NotificationPreferences,
    NotificationStatus,
    RescheduleReason,
)
from infrastructure.notifications.preferences import PreferenceResolver
from infrastructure.notifications.retry import RetryScheduler

logger = get_module_logger()

USER_UNAVAILABLE_REASON = "User not found or inactive"
EXPIRED_REASON = "Notification expired"
TYPE_DISABLED_REASON = "Notification type disabled by user"


class ChannelDispatcher:
    """Dispatches a claimed notification across its effective channels.

    Attributes:
        registry: ChannelAdapterRegistry used to look up adapters
        resolver: PreferenceResolver for channels and quiet hours
        retry_scheduler: Decides backoff or failure after total failure
        max_workers: Upper bound on concurrent channel sends per notification
    """

    def __init__(
        self,
        registry: ChannelAdapterRegistry,
        resolver: PreferenceResolver,
        retry_scheduler: RetryScheduler,
        max_workers: int = 4,
    ):
        self.registry = registry
        self.resolver = resolver
        self.retry_scheduler = retry_scheduler
        self.max_workers = max_workers

    def dispatch(
        self,
        notification: Notification,
        user: Optional[UserProfile],
        prefs: NotificationPreferences,
        now: datetime,
    ) -> DispatchOutcome:
        """Dispatch one notification.

        Args:
            notification: Claimed notification
            user: Recipient profile, None if the resident does not exist
            prefs: Recipient's preferences
            now: Dispatch time

        Returns:
            DispatchOutcome with the new notification state and the logs of
            every attempt made
        """
        if user is None or not user.is_active:
            return self._finish(
                notification, NotificationStatus.FAILED, USER_UNAVAILABLE_REASON, now
            )

        if notification.is_expired(now):
            return self._finish(
                notification, NotificationStatus.CANCELLED, EXPIRED_REASON, now
            )

        effective = self.resolver.effective_channels(notification, prefs)
        if effective.cancelled:
            return self._finish(
                notification, NotificationStatus.CANCELLED, TYPE_DISABLED_REASON, now
            )

        if self.resolver.is_quiet_hours(prefs, now):
            return self._defer(notification, prefs, now)

        logs = self._send_all(notification, user, effective.channels, now)
        successes = [log for log in logs if log.is_success]

        if not successes:
            updated = self.retry_scheduler.on_total_failure(
                notification, [log.error_message for log in logs], now
            )
            action = (
                DispatchAction.FAILED
                if updated.status == NotificationStatus.FAILED
                else DispatchAction.RETRY_SCHEDULED
            )
            return DispatchOutcome(notification=updated, action=action, logs=logs)

        delivered = [log.delivered_at for log in successes if log.delivered_at]
        updated = notification.model_copy(
            update={
                "status": NotificationStatus.SENT,
                "sent_at": now,
                "delivered_at": min(delivered) if delivered else None,
                "failure_reason": None,
                "next_attempt_at": None,
                "updated_at": now,
            }
        )
        logger.info(
            "notification_dispatched",
            notification_id=notification.id,
            user_id=notification.user_id,
            notification_type=notification.type.value,
            channels=[log.channel.value for log in logs],
            success_count=len(successes),
            total_attempts=len(logs),
        )
        return DispatchOutcome(notification=updated, action=DispatchAction.SENT, logs=logs)

    def _finish(
        self,
        notification: Notification,
        status: NotificationStatus,
        reason: str,
        now: datetime,
    ) -> DispatchOutcome:
        logger.info(
            "notification_finalized_without_delivery",
            notification_id=notification.id,
            user_id=notification.user_id,
            status=status.value,
            reason=reason,
        )
        updated = notification.model_copy(
            update={
                "status": status,
                "failure_reason": reason,
                "next_attempt_at": None,
                "updated_at": now,
            }
        )
        action = (
            DispatchAction.FAILED
            if status == NotificationStatus.FAILED
            else DispatchAction.CANCELLED
        )
        return DispatchOutcome(notification=updated, action=action)

    def _defer(
        self,
        notification: Notification,
        prefs: NotificationPreferences,
        now: datetime,
    ) -> DispatchOutcome:
        resume_at = self.resolver.next_available_time(prefs, now)
        logger.info(
            "notification_deferred_quiet_hours",
            notification_id=notification.id,
            user_id=notification.user_id,
            resume_at=resume_at.isoformat(),
        )
        updated = notification.model_copy(
            update={
                "status": NotificationStatus.PENDING,
                "scheduled_at": resume_at,
                "next_attempt_at": resume_at,
                "reschedule_reason": RescheduleReason.QUIET_HOURS,
                "updated_at": now,
            }
        )
        return DispatchOutcome(notification=updated, action=DispatchAction.DEFERRED)

    def _send_all(
        self,
        notification: Notification,
        user: UserProfile,
        channels: List[DeliveryChannel],
        now: datetime,
    ) -> List[DeliveryLog]:
        if not channels:
            return []
        if len(channels) == 1:
            return [self.send_one(notification, user, channels[0], now)]

        workers = min(len(channels), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self.send_one, notification, user, channel, now)
                for channel in channels
            ]
            # Results keep the requested channel order
            return [future.result() for future in futures]

    def send_one(
        self,
        notification: Notification,
        user: UserProfile,
        channel: DeliveryChannel,
        now: datetime,
    ) -> DeliveryLog:
        """Send through one channel and describe the attempt as a DeliveryLog.

        Never raises: adapter exceptions become failed logs.
        """
        adapter = self.registry.get(channel)
        base = {
            "notification_id": notification.id,
            "user_id": notification.user_id,
            "channel": channel,
            "notification_type": notification.type,
            "created_at": now,
        }

        if adapter is None:
            logger.warning(
                "channel_adapter_missing",
                notification_id=notification.id,
                channel=channel.value,
            )
            return DeliveryLog(
                **base,
                status=DeliveryStatus.FAILED,
                error_message=f"No adapter registered for channel {channel.value}",
                error_code="CHANNEL_UNAVAILABLE",
            )

        try:
            result = adapter.send(notification, user)
        except Exception as e:
            logger.error(
                "channel_send_raised",
                notification_id=notification.id,
                channel=channel.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DeliveryLog(
                **base,
                status=DeliveryStatus.FAILED,
                provider=adapter.provider_name,
                error_message=str(e) or type(e).__name__,
                error_code="UNEXPECTED_ERROR",
            )

        if not result.is_success:
            logger.warning(
                "channel_send_failed",
                notification_id=notification.id,
                channel=channel.value,
                provider=adapter.provider_name,
                error=result.message,
                error_code=result.error_code,
                retryable=result.is_retryable,
            )
            return DeliveryLog(
                **base,
                status=DeliveryStatus.FAILED,
                provider=adapter.provider_name,
                error_message=result.message,
                error_code=result.error_code,
            )

        data = result.data or {}
        delivered = bool(data.get("delivered"))
        return DeliveryLog(
            **base,
            status=DeliveryStatus.DELIVERED if delivered else DeliveryStatus.SENT,
            provider=data.get("provider") or adapter.provider_name,
            provider_message_id=data.get("provider_message_id"),
            delivered_at=now if delivered else None,
        )
