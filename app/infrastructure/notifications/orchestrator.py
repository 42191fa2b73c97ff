"""Notification orchestrator.

Entry point of the delivery pipeline:
- create: persist one notification and dispatch it if it is due
- create_bulk: persist many in one batch write, dispatch each independently
- sweep: pick up due, retried, deferred and abandoned notifications

Every dispatch goes through the same claim-then-dispatch path so a
notification is only ever dispatched by the worker holding its claim.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from infrastructure.identity import UserDirectory
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.notifications.delivery_log import DeliveryLogger
from infrastructure.notifications.dispatcher import ChannelDispatcher
from infrastructure.notifications.exceptions import ValidationError
from infrastructure.notifications.models import (
    DEFAULT_CHANNELS,
    DEFAULT_MAX_RETRIES,
    BulkNotificationRequest,
    CreateNotificationRequest,
    DispatchAction,
    DispatchOutcome,
    Notification,
    NotificationPriority,
    utc_now,
)
from infrastructure.notifications.preferences import PreferencesService
from infrastructure.notifications.store import NotificationStore
from infrastructure.persistence import DocumentNotFoundError

logger = get_module_logger()


@dataclass
class SweepStats:
    """Counts from one sweep run."""

    due: int = 0
    claimed: int = 0
    skipped: int = 0
    sent: int = 0
    deferred: int = 0
    retried: int = 0
    failed: int = 0
    cancelled: int = 0
    errors: int = 0

    def record(self, outcome: Optional[DispatchOutcome]) -> None:
        if outcome is None or outcome.action == DispatchAction.SKIPPED:
            self.skipped += 1
            return
        self.claimed += 1
        if outcome.action == DispatchAction.SENT:
            self.sent += 1
        elif outcome.action == DispatchAction.DEFERRED:
            self.deferred += 1
        elif outcome.action == DispatchAction.RETRY_SCHEDULED:
            self.retried += 1
        elif outcome.action == DispatchAction.FAILED:
            self.failed += 1
        elif outcome.action == DispatchAction.CANCELLED:
            self.cancelled += 1


def _validate(model, payload):
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


class NotificationOrchestrator:
    """Creates notifications and drives them through dispatch.

    Args:
        store: NotificationStore
        delivery_logger: DeliveryLogger receiving one log per attempt
        dispatcher: ChannelDispatcher
        preferences: PreferencesService (lazy defaults)
        users: UserDirectory
        max_retries: Retry budget given to new notifications
        sweep_batch_size: Maximum records picked up per sweep query
        max_workers: Concurrent dispatches in bulk and sweep runs
        clock: Returns the current time (UTC)
    """

    def __init__(
        self,
        store: NotificationStore,
        delivery_logger: DeliveryLogger,
        dispatcher: ChannelDispatcher,
        preferences: PreferencesService,
        users: UserDirectory,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sweep_batch_size: int = 100,
        max_workers: int = 8,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.delivery_logger = delivery_logger
        self.dispatcher = dispatcher
        self.preferences = preferences
        self.users = users
        self.max_retries = max_retries
        self.sweep_batch_size = sweep_batch_size
        self.max_workers = max_workers
        self.clock = clock

    def _build(self, request: CreateNotificationRequest, now: datetime) -> Notification:
        channels = (
            list(request.channels) if request.channels is not None else list(DEFAULT_CHANNELS)
        )
        scheduled_at = request.scheduled_at
        if scheduled_at is not None and scheduled_at <= now:
            scheduled_at = None
        next_attempt_at = scheduled_at or now
        return Notification(
            user_id=request.user_id,
            type=request.type,
            title=request.title,
            body=request.body,
            data=dict(request.data),
            priority=request.priority or NotificationPriority.NORMAL,
            channels=channels,
            scheduled_at=scheduled_at,
            expires_at=request.expires_at,
            max_retries=self.max_retries,
            next_attempt_at=next_attempt_at,
            created_at=now,
            updated_at=now,
        )

    def create(
        self,
        request: Union[CreateNotificationRequest, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> Notification:
        """Persist a notification and dispatch it immediately if due.

        Raises:
            ValidationError: Invalid request
            RepositoryError: Storage failure
        """
        request = _validate(CreateNotificationRequest, request)
        now = now or self.clock()
        notification = self.store.save(self._build(request, now))
        logger.info(
            "notification_created",
            notification_id=notification.id,
            user_id=notification.user_id,
            notification_type=notification.type.value,
            scheduled=notification.next_attempt_at > now,
        )

        if notification.next_attempt_at > now:
            return notification
        outcome = self.dispatch(notification, now)
        return outcome.notification if outcome else notification

    def create_bulk(
        self,
        request: Union[BulkNotificationRequest, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> List[Notification]:
        """Persist one notification per user and dispatch each independently.

        A failure for one recipient never affects the others and is never
        raised to the caller; it is logged and the notification stays pending
        for the sweep.
        """
        request = _validate(BulkNotificationRequest, request)
        now = now or self.clock()
        notifications = [
            self._build(request.for_user(user_id), now) for user_id in request.user_ids
        ]
        self.store.save_many(notifications)
        logger.info(
            "bulk_notifications_created",
            notification_type=request.type.value,
            count=len(notifications),
        )

        due = [n for n in notifications if n.next_attempt_at <= now]
        results = {n.id: n for n in notifications}
        for notification, outcome, _ in self._dispatch_many(due, now):
            if outcome is not None and outcome.action != DispatchAction.SKIPPED:
                results[notification.id] = outcome.notification
        return [results[n.id] for n in notifications]

    def sweep(self, now: Optional[datetime] = None) -> SweepStats:
        """Dispatch every due notification and recover abandoned claims."""
        now = now or self.clock()
        stats = SweepStats()
        with bind_request_context(job="notification_sweep"):
            candidates = self.store.due(now, self.sweep_batch_size)
            candidates += self.store.stale_claims(now, self.sweep_batch_size)
            stats.due = len(candidates)

            for _, outcome, error in self._dispatch_many(candidates, now):
                if error is not None:
                    stats.errors += 1
                    continue
                stats.record(outcome)

            if stats.due:
                logger.info("notification_sweep_completed", **asdict(stats))
        return stats

    def dispatch(
        self, notification: Notification, now: Optional[datetime] = None
    ) -> Optional[DispatchOutcome]:
        """Claim a notification and dispatch it.

        Returns:
            The outcome, or None if another worker holds the notification.
            An outcome with action SKIPPED means the result was discarded
            because the notification was deleted or re-claimed meanwhile.
        """
        now = now or self.clock()
        claimed = self.store.claim(notification, now)
        if claimed is None:
            return None

        user = self.users.get_user(claimed.user_id)
        prefs = self.preferences.get(claimed.user_id, now)
        outcome = self.dispatcher.dispatch(claimed, user, prefs, now)
        outcome.logs = self.delivery_logger.append_many(outcome.logs)

        try:
            written = self.store.complete(outcome.notification)
        except DocumentNotFoundError:
            logger.info(
                "notification_deleted_during_dispatch",
                notification_id=notification.id,
                action=outcome.action.value,
            )
            written = False

        if not written:
            return DispatchOutcome(
                notification=outcome.notification,
                action=DispatchAction.SKIPPED,
                logs=outcome.logs,
            )
        outcome.notification = outcome.notification.model_copy(
            update={"claim_token": None, "claim_expires_at": None}
        )
        return outcome

    def _dispatch_safely(self, notification: Notification, now: datetime):
        try:
            return notification, self.dispatch(notification, now), None
        except Exception as e:
            logger.error(
                "notification_dispatch_error",
                notification_id=notification.id,
                user_id=notification.user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return notification, None, e

    def _dispatch_many(self, notifications: List[Notification], now: datetime):
        if not notifications:
            return []
        workers = min(len(notifications), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._dispatch_safely, notification, now)
                for notification in notifications
            ]
            return [future.result() for future in futures]
