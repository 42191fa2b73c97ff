"""Shared fixtures for the notification engine test suite."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from infrastructure.identity import RepositoryUserDirectory, UserProfile
from infrastructure.notifications import (
    ChannelAdapterRegistry,
    ChannelDispatcher,
    DeliveryChannel,
    DeliveryLogger,
    InAppChannel,
    Notification,
    NotificationOrchestrator,
    NotificationPriority,
    NotificationService,
    NotificationStatus,
    NotificationStore,
    NotificationType,
    PreferenceResolver,
    PreferencesService,
    RetryScheduler,
    StatsAggregator,
)
from infrastructure.persistence import InMemoryDocumentRepository
from tests.fakes import FakeChannel

# Monday noon UTC: outside the default 22:00-08:00 quiet hours
NOON = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOON


@pytest.fixture
def repository():
    return InMemoryDocumentRepository()


@pytest.fixture
def user_factory():
    """Factory for creating UserProfile instances.

    Example:
        user = user_factory("resident-1", push_token=None)
    """

    def _factory(
        user_id: str = "resident-1",
        is_active: bool = True,
        push_token: Optional[str] = "device-token",
        email: Optional[str] = "resident@example.com",
        phone_number: Optional[str] = "+15555550100",
    ) -> UserProfile:
        return UserProfile(
            user_id=user_id,
            is_active=is_active,
            push_token=push_token,
            email=email,
            phone_number=phone_number,
        )

    return _factory


@pytest.fixture
def users(repository):
    return RepositoryUserDirectory(repository)


@pytest.fixture
def add_user(users, user_factory):
    """Save a resident profile to the directory and return it."""

    def _add(user_id: str = "resident-1", **kwargs) -> UserProfile:
        profile = user_factory(user_id, **kwargs)
        users.save_user(profile)
        return profile

    return _add


@pytest.fixture
def notification_factory(now):
    """Factory for creating Notification instances.

    Example:
        notification = notification_factory(channels=[DeliveryChannel.EMAIL])
        retried = notification_factory(retry_count=2)
    """

    def _factory(
        user_id: str = "resident-1",
        type: NotificationType = NotificationType.RESERVATION_CONFIRMATION,
        title: str = "Reservation Confirmed",
        body: str = "Your reservation for Pool has been confirmed.",
        channels: Optional[List[DeliveryChannel]] = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        status: NotificationStatus = NotificationStatus.PENDING,
        data: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> Notification:
        fields = {"next_attempt_at": now, "created_at": now, "updated_at": now}
        fields.update(kwargs)
        return Notification(
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            channels=channels or [DeliveryChannel.PUSH, DeliveryChannel.IN_APP],
            priority=priority,
            status=status,
            data=data or {},
            **fields,
        )

    return _factory


@pytest.fixture
def push_channel():
    return FakeChannel(DeliveryChannel.PUSH, delivered=True, provider_name="fcm")


@pytest.fixture
def email_channel():
    return FakeChannel(DeliveryChannel.EMAIL, provider_name="gc_notify")


@pytest.fixture
def sms_channel():
    return FakeChannel(DeliveryChannel.SMS, provider_name="gc_notify")


@pytest.fixture
def registry(push_channel, email_channel, sms_channel):
    return ChannelAdapterRegistry([push_channel, email_channel, sms_channel, InAppChannel()])


@pytest.fixture
def store(repository):
    return NotificationStore(repository, claim_lease_seconds=300)


@pytest.fixture
def delivery_logger(repository):
    return DeliveryLogger(repository)


@pytest.fixture
def preferences(repository):
    return PreferencesService(repository)


@pytest.fixture
def dispatcher(registry):
    return ChannelDispatcher(registry, PreferenceResolver("UTC"), RetryScheduler())


@pytest.fixture
def orchestrator(store, delivery_logger, dispatcher, preferences, users, now):
    return NotificationOrchestrator(
        store=store,
        delivery_logger=delivery_logger,
        dispatcher=dispatcher,
        preferences=preferences,
        users=users,
        max_retries=3,
        clock=lambda: now,
    )


@pytest.fixture
def service(orchestrator, store, delivery_logger, preferences, users):
    return NotificationService(
        orchestrator=orchestrator,
        store=store,
        delivery_logger=delivery_logger,
        preferences=preferences,
        stats=StatsAggregator(delivery_logger),
        users=users,
    )


@pytest.fixture
def mock_settings():
    """Settings double for provider clients and jobs."""
    mock = MagicMock()
    mock.fcm.FCM_PROJECT_ID = "hoa-portal"
    mock.fcm.FCM_SERVICE_ACCOUNT_JSON = '{"type": "service_account"}'
    mock.fcm.FCM_API_URL = "https://fcm.googleapis.com"
    mock.fcm.FCM_TIMEOUT_SECONDS = 10
    mock.notify.NOTIFY_SERVICE_ID = "service-id"
    mock.notify.NOTIFY_CLIENT_SECRET = "client-secret"
    mock.notify.NOTIFY_API_URL = "https://api.notification.canada.ca"
    mock.notify.NOTIFY_EMAIL_TEMPLATE_ID = "email-template"
    mock.notify.NOTIFY_SMS_TEMPLATE_ID = "sms-template"
    mock.notify.NOTIFY_TIMEOUT_SECONDS = 10
    mock.notifications.sweep_interval_seconds = 60
    return mock
