"""Notification engine core models.

Persistent documents (Notification, NotificationPreferences, DeliveryLog),
request/query DTOs used by the service and API layers, and small value
objects passed between engine components.

Uses Pydantic BaseModel for:
- Runtime validation of requests and stored documents
- Consistent (de)serialization through the document repository
- OpenAPI schemas for the HTTP layer
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class NotificationType(str, Enum):
    """Closed set of notification types raised by portal modules."""

    RESERVATION_CONFIRMATION = "reservation_confirmation"
    RESERVATION_UPDATE = "reservation_update"
    RESERVATION_CANCELLATION = "reservation_cancellation"
    RESERVATION_REMINDER = "reservation_reminder"
    MEETING_SCHEDULED = "meeting_scheduled"
    MEETING_UPDATED = "meeting_updated"
    MEETING_CANCELLED = "meeting_cancelled"
    MEETING_RESCHEDULED = "meeting_rescheduled"
    MEETING_NOTES_PUBLISHED = "meeting_notes_published"
    VOTE_CREATED = "vote_created"
    VOTE_CLOSED = "vote_closed"
    AGREEMENT_ACTIVATED = "agreement_activated"
    PAYMENT_DUE = "payment_due"
    PAYMENT_OVERDUE = "payment_overdue"
    PAYMENT_CONFIRMED = "payment_confirmed"
    SYSTEM_ANNOUNCEMENT = "system_announcement"


class NotificationStatus(str, Enum):
    """Aggregate notification status.

    SENT, FAILED and CANCELLED are terminal. DISPATCHING marks a notification
    claimed by a worker and is never returned to a pending state except by
    the dispatcher that holds the claim (or after the claim lease expires).
    """

    PENDING = "pending"
    DISPATCHING = "dispatching"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {NotificationStatus.SENT, NotificationStatus.FAILED, NotificationStatus.CANCELLED}
)


class NotificationPriority(str, Enum):
    """Notification priority levels.

    Priority is carried to providers (FCM android priority) and shown to
    residents; it does not change routing.
    """

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class DeliveryChannel(str, Enum):
    """Delivery channels supported by the engine."""

    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"
    IN_APP = "in_app"


class DeliveryStatus(str, Enum):
    """Per-channel attempt status recorded in delivery logs."""

    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class RescheduleReason(str, Enum):
    """Why a pending notification's schedule moved."""

    RETRY_BACKOFF = "retry_backoff"
    QUIET_HOURS = "quiet_hours"


DEFAULT_CHANNELS = (DeliveryChannel.PUSH, DeliveryChannel.IN_APP)
DEFAULT_MAX_RETRIES = 3

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _dedupe_channels(channels: List[DeliveryChannel]) -> List[DeliveryChannel]:
    seen: List[DeliveryChannel] = []
    for channel in channels:
        if channel not in seen:
            seen.append(channel)
    return seen


class QuietHours(BaseModel):
    """Daily window during which delivery is deferred.

    ``start`` and ``end`` are "HH:MM" in the community time zone. A window
    with start > end wraps midnight (22:00 to 08:00).
    """

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError(f"Time must be HH:MM (24h): {v}")
        return v

    @staticmethod
    def _minutes(value: str) -> int:
        hours, minutes = value.split(":")
        return int(hours) * 60 + int(minutes)

    @property
    def start_minutes(self) -> int:
        return self._minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return self._minutes(self.end)


class TypePreference(BaseModel):
    """Per-type preference: whether the type is wanted and through which channels."""

    enabled: bool = True
    channels: List[DeliveryChannel] = Field(
        default_factory=lambda: list(DEFAULT_CHANNELS)
    )
    priority: NotificationPriority = NotificationPriority.NORMAL

    @field_validator("channels")
    @classmethod
    def unique_channels(cls, v: List[DeliveryChannel]) -> List[DeliveryChannel]:
        return _dedupe_channels(v)


class NotificationPreferences(BaseModel):
    """A resident's delivery preferences (one document per user)."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    enable_push: bool = True
    enable_email: bool = True
    enable_sms: bool = False
    enable_in_app: bool = True
    quiet_hours: Optional[QuietHours] = None
    type_preferences: Dict[NotificationType, TypePreference] = Field(
        default_factory=dict
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def channel_enabled(self, channel: DeliveryChannel) -> bool:
        """Global on/off toggle for a channel."""
        return {
            DeliveryChannel.PUSH: self.enable_push,
            DeliveryChannel.EMAIL: self.enable_email,
            DeliveryChannel.SMS: self.enable_sms,
            DeliveryChannel.IN_APP: self.enable_in_app,
        }[channel]


class Notification(BaseModel):
    """A notification addressed to one resident.

    Attributes:
        id: Notification id
        user_id: Recipient resident id
        type: NotificationType
        title: Short title shown in push banners and inbox
        body: Message body
        data: Deep-link payload (values are stringified for push)
        status: Aggregate NotificationStatus
        priority: NotificationPriority
        channels: Requested delivery channels (unique, ordered)
        scheduled_at: Requested delivery time; None or past means immediate
        sent_at: When at least one channel succeeded
        delivered_at: Earliest confirmed delivery across channels
        read_at: When the resident opened it in-app
        expires_at: After this time the notification is cancelled instead of sent
        retry_count: Failed dispatch attempts so far (never above max_retries)
        max_retries: Attempt budget
        failure_reason: Human-readable reason for failed/cancelled
        reschedule_reason: Why scheduled_at last moved
        next_attempt_at: When the sweep should pick it up
        claim_token: Token of the worker currently dispatching it
        claim_expires_at: End of that worker's lease
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_id)
    user_id: str = Field(..., min_length=1)
    type: NotificationType
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    status: NotificationStatus = NotificationStatus.PENDING
    priority: NotificationPriority = NotificationPriority.NORMAL
    channels: List[DeliveryChannel] = Field(
        default_factory=lambda: list(DEFAULT_CHANNELS)
    )
    scheduled_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    failure_reason: Optional[str] = None
    reschedule_reason: Optional[RescheduleReason] = None
    next_attempt_at: Optional[datetime] = None
    claim_token: Optional[str] = None
    claim_expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("channels")
    @classmethod
    def unique_channels(cls, v: List[DeliveryChannel]) -> List[DeliveryChannel]:
        return _dedupe_channels(v)

    @model_validator(mode="after")
    def retry_count_within_budget(self) -> "Notification":
        if self.retry_count > self.max_retries:
            raise ValueError("retry_count cannot exceed max_retries")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def is_due(self, now: datetime) -> bool:
        return self.scheduled_at is None or self.scheduled_at <= now

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class DeliveryTransition(BaseModel):
    """One entry of a delivery log's append-only status history."""

    status: DeliveryStatus
    at: datetime
    detail: Optional[str] = None


class DeliveryLog(BaseModel):
    """Record of one channel attempt for one notification.

    Created once per attempt. The only later mutation is a ``delivered``
    transition appended when the provider confirms delivery.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_id)
    notification_id: str
    user_id: str
    channel: DeliveryChannel
    notification_type: Optional[NotificationType] = None
    status: DeliveryStatus
    provider: Optional[str] = None
    provider_message_id: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    delivered_at: Optional[datetime] = None
    transitions: List[DeliveryTransition] = Field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status in (DeliveryStatus.SENT, DeliveryStatus.DELIVERED)


class CreateNotificationRequest(BaseModel):
    """Request to create a single notification.

    ``channels`` absent means the default channels (push, in_app);
    ``priority`` absent means normal.
    """

    user_id: str = Field(..., min_length=1)
    type: NotificationType
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: Optional[NotificationPriority] = None
    channels: Optional[List[DeliveryChannel]] = None
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("scheduled_at", "expires_at")
    @classmethod
    def utc_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class BulkNotificationRequest(BaseModel):
    """Request to create the same notification for several residents."""

    user_ids: List[str] = Field(..., min_length=1)
    type: NotificationType
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: Optional[NotificationPriority] = None
    channels: Optional[List[DeliveryChannel]] = None
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("scheduled_at", "expires_at")
    @classmethod
    def utc_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @field_validator("user_ids")
    @classmethod
    def unique_user_ids(cls, v: List[str]) -> List[str]:
        ids: List[str] = []
        for user_id in v:
            if not user_id:
                raise ValueError("user_ids cannot contain empty ids")
            if user_id not in ids:
                ids.append(user_id)
        return ids

    def for_user(self, user_id: str) -> CreateNotificationRequest:
        return CreateNotificationRequest(
            user_id=user_id,
            **self.model_dump(exclude={"user_ids"}),
        )


class AnnouncementRequest(BaseModel):
    """System announcement; all active residents when user_ids is omitted."""

    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    user_ids: Optional[List[str]] = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationQuery(BaseModel):
    """Filters for listing notifications (newest first)."""

    user_id: Optional[str] = None
    type: Optional[NotificationType] = None
    status: Optional[NotificationStatus] = None
    priority: Optional[NotificationPriority] = None
    unread_only: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def utc_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class QuietHoursPatch(BaseModel):
    """Partial update of quiet hours; missing bounds keep their current value."""

    start: Optional[str] = None
    end: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _HHMM.match(v):
            raise ValueError(f"Time must be HH:MM (24h): {v}")
        return v


class TypePreferencePatch(BaseModel):
    """Partial update of one type preference."""

    enabled: Optional[bool] = None
    channels: Optional[List[DeliveryChannel]] = None
    priority: Optional[NotificationPriority] = None


class PreferencesUpdate(BaseModel):
    """Deep-merge patch for NotificationPreferences.

    Only fields present in the payload are applied. ``quiet_hours`` sent as
    null clears the window, omitted leaves it unchanged, and a partial
    window merges over the current one.
    """

    enable_push: Optional[bool] = None
    enable_email: Optional[bool] = None
    enable_sms: Optional[bool] = None
    enable_in_app: Optional[bool] = None
    quiet_hours: Optional[QuietHoursPatch] = None
    type_preferences: Optional[Dict[NotificationType, TypePreferencePatch]] = None


class ChannelStats(BaseModel):
    sent: int = 0
    delivered: int = 0
    failed: int = 0
    delivery_rate: float = 0.0


class NotificationStats(BaseModel):
    """Delivery statistics computed from delivery logs.

    ``total_sent`` counts every logged attempt; ``delivery_rate`` is
    delivered * 100 / total_sent; ``average_delivery_time`` is in seconds.
    """

    total_sent: int = 0
    total_delivered: int = 0
    total_failed: int = 0
    delivery_rate: float = 0.0
    average_delivery_time: float = 0.0
    channel_breakdown: Dict[DeliveryChannel, ChannelStats] = Field(default_factory=dict)
    type_breakdown: Dict[NotificationType, ChannelStats] = Field(default_factory=dict)


class DispatchAction(str, Enum):
    """What a dispatch did to the notification."""

    SENT = "sent"
    DEFERRED = "deferred"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


@dataclass
class EffectiveChannels:
    """Channels a notification will actually use after preferences apply."""

    channels: List[DeliveryChannel] = field(default_factory=list)
    cancelled: bool = False


@dataclass
class DispatchOutcome:
    """Result of dispatching one notification.

    Attributes:
        notification: Notification state after the dispatch
        action: DispatchAction taken
        logs: Delivery logs written during this dispatch
    """

    notification: Notification
    action: DispatchAction
    logs: List[DeliveryLog] = field(default_factory=list)
