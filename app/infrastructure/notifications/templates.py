"""Notification templates.

A pure map from (notification type, source entity) to the title, body and
deep-link data shown to residents. Nothing here touches storage or providers.

Usage:
    catalog = TemplateCatalog(timezone_name="America/Toronto")
    rendered = catalog.render(NotificationType.PAYMENT_DUE, payment)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Union

import pytz

from infrastructure.notifications.exceptions import ValidationError
from infrastructure.notifications.models import (
    DeliveryChannel,
    NotificationPriority,
    NotificationType,
)

Amount = Union[int, float, Decimal]


@dataclass
class Reservation:
    id: str
    user_id: str
    area_id: str
    area_name: str
    start_time: datetime
    end_time: Optional[datetime] = None


@dataclass
class Payment:
    id: str
    user_id: str
    amount: Amount
    due_date: date
    paid_date: Optional[datetime] = None


@dataclass
class Meeting:
    id: str
    title: str
    scheduled_date: datetime


@dataclass
class Vote:
    id: str
    meeting_id: str
    question: str
    meeting_title: str = ""


@dataclass
class Agreement:
    id: str
    title: str


@dataclass
class Announcement:
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RenderedTemplate:
    """Output of a template: ready to drop into a create request."""

    title: str
    body: str
    data: Dict[str, Any]
    priority: NotificationPriority = NotificationPriority.NORMAL
    channels: List[DeliveryChannel] = field(
        default_factory=lambda: [DeliveryChannel.PUSH, DeliveryChannel.IN_APP]
    )


_PUSH_IN_APP_EMAIL = [DeliveryChannel.PUSH, DeliveryChannel.IN_APP, DeliveryChannel.EMAIL]


def _iso(value: Union[date, datetime]) -> str:
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def format_amount(amount: Amount) -> str:
    return f"${Decimal(str(amount)):,.2f}"


class TemplateCatalog:
    """Renders notification content for each NotificationType.

    Dates in titles and bodies are shown in the community time zone; dates in
    ``data`` are ISO-8601.

    Args:
        timezone_name: IANA zone used for human-readable dates
    """

    def __init__(self, timezone_name: str = "UTC"):
        self._tz = pytz.timezone(timezone_name)
        self._templates: Dict[NotificationType, Callable[[Any], RenderedTemplate]] = {
            NotificationType.RESERVATION_CONFIRMATION: self._reservation_confirmation,
            NotificationType.RESERVATION_UPDATE: self._reservation_update,
            NotificationType.RESERVATION_CANCELLATION: self._reservation_cancellation,
            NotificationType.RESERVATION_REMINDER: self._reservation_reminder,
            NotificationType.PAYMENT_DUE: self._payment_due,
            NotificationType.PAYMENT_OVERDUE: self._payment_overdue,
            NotificationType.PAYMENT_CONFIRMED: self._payment_confirmed,
            NotificationType.MEETING_SCHEDULED: self._meeting_scheduled,
            NotificationType.MEETING_UPDATED: self._meeting_updated,
            NotificationType.MEETING_CANCELLED: self._meeting_cancelled,
            NotificationType.MEETING_RESCHEDULED: self._meeting_rescheduled,
            NotificationType.MEETING_NOTES_PUBLISHED: self._meeting_notes_published,
            NotificationType.VOTE_CREATED: self._vote_created,
            NotificationType.VOTE_CLOSED: self._vote_closed,
            NotificationType.AGREEMENT_ACTIVATED: self._agreement_activated,
            NotificationType.SYSTEM_ANNOUNCEMENT: self._system_announcement,
        }
        self._entities = {
            Reservation: {
                NotificationType.RESERVATION_CONFIRMATION,
                NotificationType.RESERVATION_UPDATE,
                NotificationType.RESERVATION_CANCELLATION,
                NotificationType.RESERVATION_REMINDER,
            },
            Payment: {
                NotificationType.PAYMENT_DUE,
                NotificationType.PAYMENT_OVERDUE,
                NotificationType.PAYMENT_CONFIRMED,
            },
            Meeting: {
                NotificationType.MEETING_SCHEDULED,
                NotificationType.MEETING_UPDATED,
                NotificationType.MEETING_CANCELLED,
                NotificationType.MEETING_RESCHEDULED,
                NotificationType.MEETING_NOTES_PUBLISHED,
            },
            Vote: {NotificationType.VOTE_CREATED, NotificationType.VOTE_CLOSED},
            Agreement: {NotificationType.AGREEMENT_ACTIVATED},
            Announcement: {NotificationType.SYSTEM_ANNOUNCEMENT},
        }

    def render(self, notification_type: NotificationType, entity: Any) -> RenderedTemplate:
        """Render the template for a type from its source entity.

        Raises:
            ValidationError: The entity is not the kind this type is built from
        """
        allowed = self._entities.get(type(entity), set())
        if notification_type not in allowed:
            raise ValidationError(
                f"Cannot render {notification_type.value} from {type(entity).__name__}"
            )
        return self._templates[notification_type](entity)

    def _local(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self._tz).strftime("%Y-%m-%d %H:%M")

    # Reservations

    def _reservation_data(self, r: Reservation, t: NotificationType) -> Dict[str, Any]:
        return {
            "type": t.value,
            "reservation_id": r.id,
            "area_id": r.area_id,
            "start_time": _iso(r.start_time),
        }

    def _reservation_confirmation(self, r: Reservation) -> RenderedTemplate:
        return RenderedTemplate(
            title="Reservation Confirmed",
            body=f"Your reservation for {r.area_name} on {self._local(r.start_time)} "
            "has been confirmed.",
            data=self._reservation_data(r, NotificationType.RESERVATION_CONFIRMATION),
        )

    def _reservation_update(self, r: Reservation) -> RenderedTemplate:
        return RenderedTemplate(
            title="Reservation Updated",
            body=f"Your reservation for {r.area_name} has been updated. "
            f"New time: {self._local(r.start_time)}",
            data=self._reservation_data(r, NotificationType.RESERVATION_UPDATE),
        )

    def _reservation_cancellation(self, r: Reservation) -> RenderedTemplate:
        return RenderedTemplate(
            title="Reservation Cancelled",
            body=f"Your reservation for {r.area_name} has been cancelled.",
            data={
                "type": NotificationType.RESERVATION_CANCELLATION.value,
                "reservation_id": r.id,
                "area_id": r.area_id,
            },
        )

    def _reservation_reminder(self, r: Reservation) -> RenderedTemplate:
        return RenderedTemplate(
            title="Reservation Reminder",
            body=f"Don't forget! Your reservation for {r.area_name} is tomorrow "
            f"at {self._local(r.start_time)}.",
            data=self._reservation_data(r, NotificationType.RESERVATION_REMINDER),
            priority=NotificationPriority.HIGH,
        )

    # Payments

    def _payment_data(self, p: Payment, t: NotificationType) -> Dict[str, Any]:
        return {
            "type": t.value,
            "payment_id": p.id,
            "amount": str(p.amount),
            "due_date": _iso(p.due_date),
        }

    def _payment_due(self, p: Payment) -> RenderedTemplate:
        return RenderedTemplate(
            title="Payment Due",
            body=f"Your maintenance fee of {format_amount(p.amount)} is due on "
            f"{p.due_date.isoformat()[:10]}.",
            data=self._payment_data(p, NotificationType.PAYMENT_DUE),
            priority=NotificationPriority.HIGH,
            channels=list(_PUSH_IN_APP_EMAIL),
        )

    def _payment_overdue(self, p: Payment) -> RenderedTemplate:
        return RenderedTemplate(
            title="Payment Overdue",
            body=f"Your maintenance fee of {format_amount(p.amount)} was due on "
            f"{p.due_date.isoformat()[:10]}. Please pay as soon as possible.",
            data=self._payment_data(p, NotificationType.PAYMENT_OVERDUE),
            priority=NotificationPriority.URGENT,
            channels=list(_PUSH_IN_APP_EMAIL),
        )

    def _payment_confirmed(self, p: Payment) -> RenderedTemplate:
        paid = p.paid_date or datetime.now(timezone.utc)
        return RenderedTemplate(
            title="Payment Confirmed",
            body=f"Your payment of {format_amount(p.amount)} has been successfully "
            "processed.",
            data={
                "type": NotificationType.PAYMENT_CONFIRMED.value,
                "payment_id": p.id,
                "amount": str(p.amount),
                "paid_date": _iso(paid),
            },
            channels=list(_PUSH_IN_APP_EMAIL),
        )

    # Meetings

    def _meeting_data(
        self, m: Meeting, t: NotificationType, with_date: bool = True
    ) -> Dict[str, Any]:
        data = {"type": t.value, "meeting_id": m.id}
        if with_date:
            data["scheduled_date"] = _iso(m.scheduled_date)
        return data

    def _meeting_scheduled(self, m: Meeting) -> RenderedTemplate:
        return RenderedTemplate(
            title="New Meeting Scheduled",
            body=f'"{m.title}" has been scheduled for {self._local(m.scheduled_date)}',
            data=self._meeting_data(m, NotificationType.MEETING_SCHEDULED),
        )

    def _meeting_updated(self, m: Meeting) -> RenderedTemplate:
        return RenderedTemplate(
            title="Meeting Updated",
            body=f'"{m.title}" has been updated',
            data=self._meeting_data(m, NotificationType.MEETING_UPDATED),
        )

    def _meeting_cancelled(self, m: Meeting) -> RenderedTemplate:
        return RenderedTemplate(
            title="Meeting Cancelled",
            body=f'"{m.title}" has been cancelled',
            data=self._meeting_data(m, NotificationType.MEETING_CANCELLED, with_date=False),
            priority=NotificationPriority.HIGH,
        )

    def _meeting_rescheduled(self, m: Meeting) -> RenderedTemplate:
        return RenderedTemplate(
            title="Meeting Rescheduled",
            body=f'"{m.title}" has been rescheduled to {self._local(m.scheduled_date)}',
            data=self._meeting_data(m, NotificationType.MEETING_RESCHEDULED),
            priority=NotificationPriority.HIGH,
        )

    def _meeting_notes_published(self, m: Meeting) -> RenderedTemplate:
        return RenderedTemplate(
            title="Meeting Notes Published",
            body=f'Notes for "{m.title}" are now available',
            data=self._meeting_data(
                m, NotificationType.MEETING_NOTES_PUBLISHED, with_date=False
            ),
        )

    # Votes, agreements, announcements

    def _vote_created(self, v: Vote) -> RenderedTemplate:
        body = f'Vote on "{v.question}"'
        if v.meeting_title:
            body += f' for meeting "{v.meeting_title}"'
        return RenderedTemplate(
            title="New Vote Available",
            body=body,
            data={
                "type": NotificationType.VOTE_CREATED.value,
                "vote_id": v.id,
                "meeting_id": v.meeting_id,
            },
            priority=NotificationPriority.HIGH,
        )

    def _vote_closed(self, v: Vote) -> RenderedTemplate:
        return RenderedTemplate(
            title="Vote Closed",
            body=f'Voting has ended for "{v.question}"',
            data={
                "type": NotificationType.VOTE_CLOSED.value,
                "vote_id": v.id,
                "meeting_id": v.meeting_id,
            },
        )

    def _agreement_activated(self, a: Agreement) -> RenderedTemplate:
        return RenderedTemplate(
            title="New Agreement Active",
            body=f'"{a.title}" is now active and requires your review',
            data={
                "type": NotificationType.AGREEMENT_ACTIVATED.value,
                "agreement_id": a.id,
            },
            priority=NotificationPriority.HIGH,
        )

    def _system_announcement(self, a: Announcement) -> RenderedTemplate:
        return RenderedTemplate(
            title=a.title,
            body=a.body,
            data={"type": NotificationType.SYSTEM_ANNOUNCEMENT.value, **a.data},
        )
