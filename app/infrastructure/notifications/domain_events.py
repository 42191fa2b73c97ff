"""Entry points called by portal modules when something happens.

Reservations, payments, meetings, votes and agreements call these methods;
each renders its template and hands a create request to the service.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import ValidationError
from infrastructure.notifications.models import (
    AnnouncementRequest,
    BulkNotificationRequest,
    CreateNotificationRequest,
    Notification,
    NotificationPriority,
    NotificationType,
    utc_now,
)
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.templates import (
    Agreement,
    Meeting,
    Payment,
    RenderedTemplate,
    Reservation,
    TemplateCatalog,
    Vote,
)

logger = get_module_logger()

REMINDER_LEAD_TIME = timedelta(hours=24)

MEETING_TYPES = frozenset(
    {
        NotificationType.MEETING_SCHEDULED,
        NotificationType.MEETING_UPDATED,
        NotificationType.MEETING_CANCELLED,
        NotificationType.MEETING_RESCHEDULED,
        NotificationType.MEETING_NOTES_PUBLISHED,
    }
)
VOTE_TYPES = frozenset({NotificationType.VOTE_CREATED, NotificationType.VOTE_CLOSED})


class DomainNotifier:
    """Turns portal events into notifications.

    Args:
        service: NotificationService used to create notifications
        catalog: TemplateCatalog rendering the content
        clock: Returns the current time (UTC)
    """

    def __init__(
        self,
        service: NotificationService,
        catalog: TemplateCatalog,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.service = service
        self.catalog = catalog
        self.clock = clock

    def _single(
        self,
        user_id: str,
        notification_type: NotificationType,
        rendered: RenderedTemplate,
        scheduled_at: Optional[datetime] = None,
    ) -> Notification:
        return self.service.create(
            CreateNotificationRequest(
                user_id=user_id,
                type=notification_type,
                title=rendered.title,
                body=rendered.body,
                data=rendered.data,
                priority=rendered.priority,
                channels=rendered.channels,
                scheduled_at=scheduled_at,
            )
        )

    def _bulk(
        self,
        user_ids: List[str],
        notification_type: NotificationType,
        rendered: RenderedTemplate,
    ) -> List[Notification]:
        if not user_ids:
            logger.info(
                "domain_notification_skipped_no_recipients",
                notification_type=notification_type.value,
            )
            return []
        return self.service.create_bulk(
            BulkNotificationRequest(
                user_ids=user_ids,
                type=notification_type,
                title=rendered.title,
                body=rendered.body,
                data=rendered.data,
                priority=rendered.priority,
                channels=rendered.channels,
            )
        )

    # Reservations

    def reservation_confirmed(self, reservation: Reservation) -> Notification:
        rendered = self.catalog.render(
            NotificationType.RESERVATION_CONFIRMATION, reservation
        )
        return self._single(
            reservation.user_id, NotificationType.RESERVATION_CONFIRMATION, rendered
        )

    def reservation_updated(self, reservation: Reservation) -> Notification:
        rendered = self.catalog.render(NotificationType.RESERVATION_UPDATE, reservation)
        return self._single(
            reservation.user_id, NotificationType.RESERVATION_UPDATE, rendered
        )

    def reservation_cancelled(self, reservation: Reservation) -> Notification:
        rendered = self.catalog.render(
            NotificationType.RESERVATION_CANCELLATION, reservation
        )
        return self._single(
            reservation.user_id, NotificationType.RESERVATION_CANCELLATION, rendered
        )

    def schedule_reservation_reminder(
        self, reservation: Reservation
    ) -> Optional[Notification]:
        """Schedule a reminder 24 hours before the reservation starts.

        Returns None when that moment has already passed.
        """
        start = reservation.start_time
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        remind_at = start - REMINDER_LEAD_TIME
        if remind_at <= self.clock():
            logger.info(
                "reservation_reminder_skipped",
                reservation_id=reservation.id,
                remind_at=remind_at.isoformat(),
            )
            return None

        rendered = self.catalog.render(NotificationType.RESERVATION_REMINDER, reservation)
        notification = self._single(
            reservation.user_id,
            NotificationType.RESERVATION_REMINDER,
            rendered,
            scheduled_at=remind_at,
        )
        logger.info(
            "reservation_reminder_scheduled",
            reservation_id=reservation.id,
            notification_id=notification.id,
            remind_at=remind_at.isoformat(),
        )
        return notification

    # Payments

    def payment_due(self, payment: Payment) -> Notification:
        rendered = self.catalog.render(NotificationType.PAYMENT_DUE, payment)
        return self._single(payment.user_id, NotificationType.PAYMENT_DUE, rendered)

    def payment_overdue(self, payment: Payment) -> Notification:
        rendered = self.catalog.render(NotificationType.PAYMENT_OVERDUE, payment)
        return self._single(payment.user_id, NotificationType.PAYMENT_OVERDUE, rendered)

    def payment_confirmed(self, payment: Payment) -> Notification:
        rendered = self.catalog.render(NotificationType.PAYMENT_CONFIRMED, payment)
        return self._single(payment.user_id, NotificationType.PAYMENT_CONFIRMED, rendered)

    # Meetings and votes

    def meeting_event(
        self,
        meeting: Meeting,
        notification_type: NotificationType,
        attendee_ids: List[str],
    ) -> List[Notification]:
        if notification_type not in MEETING_TYPES:
            raise ValidationError(
                f"Not a meeting notification type: {notification_type}"
            )
        rendered = self.catalog.render(notification_type, meeting)
        return self._bulk(attendee_ids, notification_type, rendered)

    def vote_event(
        self,
        vote: Vote,
        notification_type: NotificationType,
        attendee_ids: List[str],
    ) -> List[Notification]:
        if notification_type not in VOTE_TYPES:
            raise ValidationError(
                f"Not a vote notification type: {notification_type}"
            )
        rendered = self.catalog.render(notification_type, vote)
        return self._bulk(attendee_ids, notification_type, rendered)

    # Community-wide

    def agreement_activated(self, agreement: Agreement) -> List[Notification]:
        """Agreements are community-wide: every active resident is notified."""
        rendered = self.catalog.render(NotificationType.AGREEMENT_ACTIVATED, agreement)
        return self._bulk(
            self.service.users.list_active_user_ids(),
            NotificationType.AGREEMENT_ACTIVATED,
            rendered,
        )

    def system_announcement(
        self,
        title: str,
        body: str,
        user_ids: Optional[List[str]] = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> List[Notification]:
        return self.service.announce(
            AnnouncementRequest(
                title=title, body=body, user_ids=user_ids, priority=priority
            )
        )
