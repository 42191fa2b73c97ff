"""Notification delivery engine.

Multi-channel delivery (push, email, sms, in_app) of resident notifications:
- Per-resident preferences and quiet hours
- Concurrent per-channel fan-out with isolated failures
- Exponential backoff retries with a bounded budget
- Append-only delivery logs and delivery statistics
- A periodic sweep for scheduled, deferred and retried notifications

Usage:
    from infrastructure.notifications import CreateNotificationRequest
    from infrastructure.services import get_notification_service

    service = get_notification_service()
    notification = service.create(
        CreateNotificationRequest(
            user_id="resident-1",
            type="payment_due",
            title="Payment Due",
            body="Your maintenance fee is due on 2024-06-01.",
        )
    )
    notification.status  # NotificationStatus.SENT
"""

# Models
from infrastructure.notifications.models import (
    AnnouncementRequest,
    BulkNotificationRequest,
    CreateNotificationRequest,
    DeliveryChannel,
    DeliveryLog,
    DeliveryStatus,
    DispatchAction,
    DispatchOutcome,
    Notification,
    NotificationPreferences,
    NotificationPriority,
    NotificationQuery,
    NotificationStats,
    NotificationStatus,
    NotificationType,
    PreferencesUpdate,
    QuietHours,
    QuietHoursPatch,
    RescheduleReason,
    TypePreference,
    TypePreferencePatch,
)

# Errors
from infrastructure.notifications.exceptions import (
    ExhaustedRetriesError,
    NotFoundError,
    NotificationError,
    ProviderError,
    UnauthorizedError,
    ValidationError,
)

# Channels
from infrastructure.notifications.channels import (
    ChannelAdapter,
    ChannelAdapterRegistry,
    EmailChannel,
    InAppChannel,
    PushChannel,
    SmsChannel,
)

# Engine components
from infrastructure.notifications.delivery_log import DeliveryLogger
from infrastructure.notifications.dispatcher import ChannelDispatcher
from infrastructure.notifications.domain_events import DomainNotifier
from infrastructure.notifications.orchestrator import NotificationOrchestrator, SweepStats
from infrastructure.notifications.preferences import (
    PreferenceResolver,
    PreferencesService,
    default_preferences,
)
from infrastructure.notifications.retry import RetryPolicy, RetryScheduler
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.stats import StatsAggregator
from infrastructure.notifications.store import NotificationStore
from infrastructure.notifications.templates import TemplateCatalog

__all__ = [
    # Models
    "AnnouncementRequest",
    "BulkNotificationRequest",
    "CreateNotificationRequest",
    "DeliveryChannel",
    "DeliveryLog",
    "DeliveryStatus",
    "DispatchAction",
    "DispatchOutcome",
    "Notification",
    "NotificationPreferences",
    "NotificationPriority",
    "NotificationQuery",
    "NotificationStats",
    "NotificationStatus",
    "NotificationType",
    "PreferencesUpdate",
    "QuietHours",
    "QuietHoursPatch",
    "RescheduleReason",
    "TypePreference",
    "TypePreferencePatch",
    # Errors
    "ExhaustedRetriesError",
    "NotFoundError",
    "NotificationError",
    "ProviderError",
    "UnauthorizedError",
    "ValidationError",
    # Channels
    "ChannelAdapter",
    "ChannelAdapterRegistry",
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
    "SmsChannel",
    # Engine
    "ChannelDispatcher",
    "DeliveryLogger",
    "DomainNotifier",
    "NotificationOrchestrator",
    "NotificationService",
    "NotificationStore",
    "PreferenceResolver",
    "PreferencesService",
    "RetryPolicy",
    "RetryScheduler",
    "StatsAggregator",
    "SweepStats",
    "TemplateCatalog",
    "default_preferences",
]
