"""Unit tests for NotificationService inbox, receipts and announcements."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from infrastructure.notifications.exceptions import NotFoundError, UnauthorizedError
from infrastructure.notifications.models import (
    AnnouncementRequest,
    DeliveryChannel,
    DeliveryStatus,
    NotificationQuery,
    NotificationStatus,
    NotificationType,
)
from infrastructure.notifications.service import NotificationService


@pytest.fixture
def saved(store, notification_factory):
    """Persist notifications straight to the store, bypassing dispatch."""

    def _save(**kwargs):
        return store.save(notification_factory(**kwargs))

    return _save


@pytest.mark.unit
class TestInbox:
    def test_get_checks_ownership(self, service, saved):
        notification = saved()

        assert service.get(notification.id, "resident-1").id == notification.id
        with pytest.raises(UnauthorizedError):
            service.get(notification.id, "resident-2")

    def test_get_unknown(self, service):
        with pytest.raises(NotFoundError):
            service.get("missing", "resident-1")

    def test_mark_read_is_idempotent(self, service, saved, now):
        notification = saved()

        first = service.mark_read(notification.id, "resident-1", now)
        second = service.mark_read(notification.id, "resident-1", now + timedelta(hours=1))

        assert first.read_at == now
        assert second.read_at == now
        assert service.store.get(notification.id).read_at == now

    def test_mark_read_other_users_notification(self, service, saved):
        notification = saved(user_id="resident-2")

        with pytest.raises(UnauthorizedError):
            service.mark_read(notification.id, "resident-1")

        assert service.store.get(notification.id).read_at is None

    def test_mark_all_read(self, service, saved, now):
        saved()
        saved()
        saved(user_id="resident-2")

        assert service.unread_count("resident-1") == 2
        assert service.mark_all_read("resident-1", now) == 2
        assert service.unread_count("resident-1") == 0
        assert service.unread_count("resident-2") == 1
        assert service.mark_all_read("resident-1", now) == 0

    def test_delete_keeps_delivery_logs(self, service, add_user):
        add_user()
        notification = service.create(
            {
                "user_id": "resident-1",
                "type": "payment_due",
                "title": "Payment Due",
                "body": "Your payment is due",
            }
        )

        service.delete(notification.id, "resident-1")

        assert service.store.get(notification.id) is None
        assert len(service.delivery_logger.for_notification(notification.id)) == 2
        with pytest.raises(NotFoundError):
            service.get(notification.id, "resident-1")

    def test_delete_other_users_notification(self, service, saved):
        notification = saved(user_id="resident-2")

        with pytest.raises(UnauthorizedError):
            service.delete(notification.id, "resident-1")

        assert service.store.get(notification.id) is not None

    def test_list_filters_and_caps(self, store, delivery_logger, preferences, users, saved, now):
        service = NotificationService(
            orchestrator=MagicMock(),
            store=store,
            delivery_logger=delivery_logger,
            preferences=preferences,
            stats=MagicMock(),
            users=users,
            query_limit=3,
        )
        for i in range(5):
            saved(created_at=now - timedelta(minutes=i))
        saved(type=NotificationType.VOTE_CREATED, created_at=now + timedelta(minutes=1))

        results = service.list(
            NotificationQuery(
                user_id="resident-1",
                type=NotificationType.RESERVATION_CONFIRMATION,
                limit=50,
            )
        )

        assert len(results) == 3
        assert [n.created_at for n in results] == [
            now,
            now - timedelta(minutes=1),
            now - timedelta(minutes=2),
        ]

    def test_list_status_filter(self, service, saved):
        saved(status=NotificationStatus.FAILED)
        saved()

        results = service.list(NotificationQuery(status=NotificationStatus.FAILED))

        assert [n.status for n in results] == [NotificationStatus.FAILED]


@pytest.mark.unit
class TestDeliveryReceipt:
    def test_receipt_sets_notification_delivered_at(self, service, add_user, now):
        add_user()
        notification = service.create(
            {
                "user_id": "resident-1",
                "type": "payment_due",
                "title": "Payment Due",
                "body": "Your payment is due",
                "channels": ["email"],
            }
        )
        assert notification.status == NotificationStatus.SENT
        assert notification.delivered_at is None
        log = service.delivery_logger.for_notification(notification.id)[0]
        assert log.status == DeliveryStatus.SENT

        delivered_at = now + timedelta(seconds=45)
        updated = service.record_delivery_receipt(log.id, delivered_at)

        assert updated.status == DeliveryStatus.DELIVERED
        assert service.store.get(notification.id).delivered_at == delivered_at

    def test_receipt_keeps_earliest_delivery(self, service, add_user, now):
        add_user()
        notification = service.create(
            {
                "user_id": "resident-1",
                "type": "payment_due",
                "title": "Payment Due",
                "body": "Your payment is due",
                "channels": ["push", "email"],
            }
        )
        email_log = next(
            log
            for log in service.delivery_logger.for_notification(notification.id)
            if log.channel == DeliveryChannel.EMAIL
        )

        service.record_delivery_receipt(email_log.id, now + timedelta(minutes=1))

        assert service.store.get(notification.id).delivered_at == now

    def test_receipt_after_notification_deleted(self, service, add_user, now):
        add_user()
        notification = service.create(
            {
                "user_id": "resident-1",
                "type": "payment_due",
                "title": "Payment Due",
                "body": "Your payment is due",
                "channels": ["email"],
            }
        )
        log = service.delivery_logger.for_notification(notification.id)[0]
        service.delete(notification.id, "resident-1")
        assert len(service.delivery_logger.for_notification(notification.id)) == 1

        updated = service.record_delivery_receipt(log.id, now)

        assert updated.delivered_at == now

    def test_unknown_log(self, service):
        with pytest.raises(NotFoundError):
            service.record_delivery_receipt("missing")


@pytest.mark.unit
class TestAnnounce:
    def test_announce_to_all_active_residents(self, service, add_user, push_channel):
        add_user("a")
        add_user("b")
        add_user("c", is_active=False)

        results = service.announce(
            AnnouncementRequest(title="Water shut-off", body="Tuesday 9:00-12:00")
        )

        assert sorted(n.user_id for n in results) == ["a", "b"]
        assert all(n.type == NotificationType.SYSTEM_ANNOUNCEMENT for n in results)
        assert all(n.status == NotificationStatus.SENT for n in results)
        assert sorted(push_channel.sent_to) == ["a", "b"]

    def test_announce_to_selected_residents(self, service, add_user):
        add_user("a")
        add_user("b")

        results = service.announce(
            AnnouncementRequest(title="Board notice", body="See portal", user_ids=["b"])
        )

        assert [n.user_id for n in results] == ["b"]

    def test_announce_without_recipients(self, service):
        assert service.announce(AnnouncementRequest(title="Hello", body="World")) == []


@pytest.mark.unit
class TestStats:
    def test_stats_after_dispatch(self, service, add_user):
        add_user()
        service.create(
            {
                "user_id": "resident-1",
                "type": "payment_due",
                "title": "Payment Due",
                "body": "Your payment is due",
                "channels": ["push", "in_app", "email"],
            }
        )

        stats = service.stats(user_id="resident-1")

        assert stats.total_sent == 3
        assert stats.total_delivered == 2
        assert stats.delivery_rate == pytest.approx(66.666, rel=1e-3)
