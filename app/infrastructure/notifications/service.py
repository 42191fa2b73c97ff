"""Notification service for dependency injection.

Provides a class-based facade over the notification engine for the HTTP
layer and for portal modules: creation (delegated to the orchestrator),
resident inbox operations, statistics, preferences and provider receipts.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional, Union

from infrastructure.identity import UserDirectory
from infrastructure.logging import get_module_logger
from infrastructure.notifications.delivery_log import DeliveryLogger
from infrastructure.notifications.exceptions import NotFoundError, UnauthorizedError
from infrastructure.notifications.models import (
    DEFAULT_CHANNELS,
    AnnouncementRequest,
    BulkNotificationRequest,
    CreateNotificationRequest,
    DeliveryLog,
    Notification,
    NotificationPreferences,
    NotificationQuery,
    NotificationStats,
    NotificationType,
    PreferencesUpdate,
    QuietHours,
    utc_now,
)
from infrastructure.notifications.orchestrator import NotificationOrchestrator, SweepStats
from infrastructure.notifications.preferences import PreferencesService
from infrastructure.notifications.stats import StatsAggregator
from infrastructure.notifications.store import NotificationStore

logger = get_module_logger()

DEFAULT_QUERY_LIMIT = 100


class NotificationService:
    """Class-based notification service.

    Thin facade: delivery work is done by the NotificationOrchestrator,
    persistence by the store, delivery log and preferences services.

    Usage:
        # Via dependency injection
        from infrastructure.services import NotificationServiceDep

        @router.put("/{notification_id}/read")
        def mark_read(notification_id: str, service: NotificationServiceDep, ...):
            return service.mark_read(notification_id, user_id)

        # Direct use from a portal module
        service = get_notification_service()
        service.create({"user_id": "u1", "type": "payment_due", ...})
    """

    def __init__(
        self,
        orchestrator: NotificationOrchestrator,
        store: NotificationStore,
        delivery_logger: DeliveryLogger,
        preferences: PreferencesService,
        stats: StatsAggregator,
        users: UserDirectory,
        query_limit: int = DEFAULT_QUERY_LIMIT,
    ):
        self.orchestrator = orchestrator
        self.store = store
        self.delivery_logger = delivery_logger
        self.preferences = preferences
        self.stats_aggregator = stats
        self.users = users
        self.query_limit = query_limit

    # Creation

    def create(
        self,
        request: Union[CreateNotificationRequest, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> Notification:
        return self.orchestrator.create(request, now)

    def create_bulk(
        self,
        request: Union[BulkNotificationRequest, Mapping[str, Any]],
        now: Optional[datetime] = None,
    ) -> List[Notification]:
        return self.orchestrator.create_bulk(request, now)

    def announce(
        self, request: AnnouncementRequest, now: Optional[datetime] = None
    ) -> List[Notification]:
        """Send a system announcement to the given residents, or to all active ones."""
        user_ids = (
            request.user_ids
            if request.user_ids is not None
            else self.users.list_active_user_ids()
        )
        if not user_ids:
            logger.info("announcement_skipped_no_recipients")
            return []
        return self.orchestrator.create_bulk(
            BulkNotificationRequest(
                user_ids=user_ids,
                type=NotificationType.SYSTEM_ANNOUNCEMENT,
                title=request.title,
                body=request.body,
                data=request.data,
                priority=request.priority,
                channels=list(DEFAULT_CHANNELS),
            ),
            now,
        )

    def sweep(self, now: Optional[datetime] = None) -> SweepStats:
        return self.orchestrator.sweep(now)

    # Inbox

    def list(self, query: NotificationQuery) -> List[Notification]:
        """Notifications matching the query, newest first, capped."""
        limit = min(query.limit or self.query_limit, self.query_limit)
        return self.store.query(query, limit)

    def get(self, notification_id: str, user_id: str) -> Notification:
        """Return a notification owned by ``user_id``.

        Raises:
            NotFoundError: Unknown notification
            UnauthorizedError: The notification belongs to someone else
        """
        notification = self.store.get(notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        if notification.user_id != user_id:
            logger.warning(
                "notification_access_denied",
                notification_id=notification_id,
                user_id=user_id,
            )
            raise UnauthorizedError("Notification belongs to another user")
        return notification

    def mark_read(
        self, notification_id: str, user_id: str, now: Optional[datetime] = None
    ) -> Notification:
        """Mark one notification read. Marking twice keeps the first read_at."""
        notification = self.get(notification_id, user_id)
        if notification.is_read:
            return notification
        now = now or utc_now()
        self.store.update(notification_id, {"read_at": now, "updated_at": now})
        return notification.model_copy(update={"read_at": now, "updated_at": now})

    def mark_all_read(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Mark every unread notification of a resident read in one batch."""
        now = now or utc_now()
        ids = self.store.unread_ids(user_id)
        self.store.mark_read(ids, now)
        logger.info("notifications_marked_read", user_id=user_id, count=len(ids))
        return len(ids)

    def unread_count(self, user_id: str) -> int:
        return self.store.count_unread(user_id)

    def delete(self, notification_id: str, user_id: str) -> None:
        """Delete a notification owned by ``user_id``. Delivery logs are kept."""
        self.get(notification_id, user_id)
        self.store.delete(notification_id)
        logger.info(
            "notification_deleted", notification_id=notification_id, user_id=user_id
        )

    # Statistics and receipts

    def stats(
        self,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> NotificationStats:
        return self.stats_aggregator.compute(user_id=user_id, start=start, end=end)

    def record_delivery_receipt(
        self,
        log_id: str,
        delivered_at: Optional[datetime] = None,
        provider_message_id: Optional[str] = None,
    ) -> DeliveryLog:
        """Record a provider delivery callback.

        The notification's ``delivered_at`` moves to the earliest confirmed
        delivery. A receipt for a deleted notification only updates the log.
        """
        log = self.delivery_logger.record_delivered(
            log_id, delivered_at, provider_message_id
        )
        notification = self.store.get(log.notification_id)
        if notification is not None and log.delivered_at is not None and (
            notification.delivered_at is None
            or log.delivered_at < notification.delivered_at
        ):
            self.store.update(notification.id, {"delivered_at": log.delivered_at})
        return log

    # Preferences

    def get_preferences(self, user_id: str) -> NotificationPreferences:
        return self.preferences.get(user_id)

    def update_preferences(
        self, user_id: str, patch: PreferencesUpdate
    ) -> NotificationPreferences:
        return self.preferences.update(user_id, patch)

    def reset_preferences(self, user_id: str) -> NotificationPreferences:
        return self.preferences.reset(user_id)

    def toggle_type(
        self, user_id: str, notification_type: NotificationType, enabled: bool
    ) -> NotificationPreferences:
        return self.preferences.toggle_type(user_id, notification_type, enabled)

    def set_quiet_hours(
        self, user_id: str, quiet_hours: Optional[QuietHours]
    ) -> NotificationPreferences:
        return self.preferences.set_quiet_hours(user_id, quiet_hours)
