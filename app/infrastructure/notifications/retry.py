"""Retry decisions after a dispatch in which every channel failed."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import ExhaustedRetriesError
from infrastructure.notifications.models import (
    Notification,
    NotificationStatus,
    RescheduleReason,
)

logger = get_module_logger()

NO_CHANNELS_REASON = "No enabled delivery channels"
MAX_RETRIES_REASON = "Max retries exceeded"


@dataclass
class RetryPolicy:
    """Backoff timing for failed notifications.

    Attributes:
        base_delay_minutes: Base delay; the n-th retry waits base * 2^n
        max_delay_minutes: Cap for a single delay

    Example:
        policy = RetryPolicy(base_delay_minutes=1)
        policy.delay_for(1)  # 2 minutes
    """

    base_delay_minutes: int = 1
    max_delay_minutes: int = 1440

    def __post_init__(self) -> None:
        if self.base_delay_minutes < 1:
            raise ValueError("base_delay_minutes must be at least 1")
        if self.max_delay_minutes < self.base_delay_minutes:
            raise ValueError("max_delay_minutes must be >= base_delay_minutes")

    def delay_for(self, retry_count: int) -> timedelta:
        """Delay before the attempt following ``retry_count`` failures."""
        minutes = self.base_delay_minutes * (2**retry_count)
        return timedelta(minutes=min(minutes, self.max_delay_minutes))


def failure_reason(errors: Iterable[Optional[str]]) -> str:
    """Human-readable reason for a permanently failed notification.

    One distinct channel error is reported verbatim; anything else collapses
    to a generic message.
    """
    distinct = {e for e in errors if e}
    if not distinct:
        return NO_CHANNELS_REASON
    if len(distinct) == 1:
        return distinct.pop()
    return MAX_RETRIES_REASON


class RetryScheduler:
    """Backs off or permanently fails a notification after total failure.

    Quiet-hours deferrals never go through here, so they never consume the
    retry budget.
    """

    def __init__(self, policy: Optional[RetryPolicy] = None):
        self.policy = policy or RetryPolicy()

    def next_attempt_time(self, notification: Notification, now: datetime) -> datetime:
        """When the next attempt should run after one more failure.

        Raises:
            ExhaustedRetriesError: The failure being recorded uses up the budget
        """
        retry_count = notification.retry_count + 1
        if retry_count >= notification.max_retries:
            raise ExhaustedRetriesError(notification.id, retry_count)
        return now + self.policy.delay_for(retry_count)

    def on_total_failure(
        self,
        notification: Notification,
        errors: Iterable[Optional[str]],
        now: datetime,
    ) -> Notification:
        """Return the notification rescheduled with backoff, or failed.

        Args:
            notification: Notification whose dispatch produced no success
            errors: Error messages of the failed attempts (empty when no
                channel was attempted)
            now: Time of the failed dispatch
        """
        errors = list(errors)
        retry_count = min(notification.retry_count + 1, notification.max_retries)
        try:
            next_attempt = self.next_attempt_time(notification, now)
        except ExhaustedRetriesError:
            reason = failure_reason(errors)
            logger.warning(
                "notification_failed",
                notification_id=notification.id,
                user_id=notification.user_id,
                retry_count=retry_count,
                reason=reason,
            )
            return notification.model_copy(
                update={
                    "status": NotificationStatus.FAILED,
                    "retry_count": retry_count,
                    "failure_reason": reason,
                    "next_attempt_at": None,
                    "updated_at": now,
                }
            )

        logger.info(
            "retry_scheduled",
            notification_id=notification.id,
            user_id=notification.user_id,
            retry_count=retry_count,
            max_retries=notification.max_retries,
            next_attempt_at=next_attempt.isoformat(),
        )
        return notification.model_copy(
            update={
                "status": NotificationStatus.PENDING,
                "retry_count": retry_count,
                "scheduled_at": next_attempt,
                "next_attempt_at": next_attempt,
                "reschedule_reason": RescheduleReason.RETRY_BACKOFF,
                "updated_at": now,
            }
        )
