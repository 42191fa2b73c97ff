"""Resident delivery preferences.

PreferenceResolver is pure: it decides which channels a notification may use
and whether the resident is inside their quiet hours. PreferencesService
owns the ``notification_preferences`` documents (lazy defaults, deep-merge
patches, reset, per-type toggle, quiet hours).
"""

from datetime import datetime, time, timedelta, timezone
from typing import Dict, Optional

import pytz

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import ValidationError
from infrastructure.notifications.models import (
    DeliveryChannel,
    EffectiveChannels,
    Notification,
    NotificationPreferences,
    NotificationPriority,
    NotificationType,
    PreferencesUpdate,
    QuietHours,
    QuietHoursPatch,
    TypePreference,
    utc_now,
)
from infrastructure.persistence import DocumentRepository

logger = get_module_logger()

PREFERENCES_COLLECTION = "notification_preferences"

DEFAULT_QUIET_HOURS = QuietHours(start="22:00", end="08:00")

_PUSH_IN_APP = [DeliveryChannel.PUSH, DeliveryChannel.IN_APP]
_PUSH_IN_APP_EMAIL = [DeliveryChannel.PUSH, DeliveryChannel.IN_APP, DeliveryChannel.EMAIL]

DEFAULT_TYPE_PREFERENCES: Dict[NotificationType, tuple] = {
    NotificationType.RESERVATION_CONFIRMATION: (_PUSH_IN_APP, NotificationPriority.NORMAL),
    NotificationType.RESERVATION_UPDATE: (_PUSH_IN_APP, NotificationPriority.NORMAL),
    NotificationType.RESERVATION_CANCELLATION: (_PUSH_IN_APP, NotificationPriority.NORMAL),
    NotificationType.RESERVATION_REMINDER: (_PUSH_IN_APP, NotificationPriority.HIGH),
    NotificationType.MEETING_SCHEDULED: (_PUSH_IN_APP, NotificationPriority.NORMAL),
    NotificationType.MEETING_UPDATED: (_PUSH_IN_APP, NotificationPriority.NORMAL),
    NotificationType.MEETING_CANCELLED: (_PUSH_IN_APP, NotificationPriority.HIGH),
    NotificationType.MEETING_RESCHEDULED: (_PUSH_IN_APP, NotificationPriority.HIGH),
    NotificationType.MEETING_NOTES_PUBLISHED: (_PUSH_IN_APP, NotificationPriority.NORMAL),
    NotificationType.VOTE_CREATED: (_PUSH_IN_APP, NotificationPriority.HIGH),
    NotificationType.VOTE_CLOSED: (_PUSH_IN_APP, NotificationPriority.NORMAL),
    NotificationType.AGREEMENT_ACTIVATED: (_PUSH_IN_APP, NotificationPriority.HIGH),
    NotificationType.PAYMENT_DUE: (_PUSH_IN_APP_EMAIL, NotificationPriority.HIGH),
    NotificationType.PAYMENT_OVERDUE: (_PUSH_IN_APP_EMAIL, NotificationPriority.URGENT),
    NotificationType.PAYMENT_CONFIRMED: (_PUSH_IN_APP_EMAIL, NotificationPriority.NORMAL),
    NotificationType.SYSTEM_ANNOUNCEMENT: (_PUSH_IN_APP, NotificationPriority.NORMAL),
}


def default_type_preference(notification_type: NotificationType) -> TypePreference:
    channels, priority = DEFAULT_TYPE_PREFERENCES[notification_type]
    return TypePreference(enabled=True, channels=list(channels), priority=priority)


def default_preferences(
    user_id: str, now: Optional[datetime] = None
) -> NotificationPreferences:
    """Preferences a resident gets before changing anything."""
    now = now or utc_now()
    return NotificationPreferences(
        user_id=user_id,
        enable_push=True,
        enable_email=True,
        enable_sms=False,
        enable_in_app=True,
        quiet_hours=DEFAULT_QUIET_HOURS.model_copy(),
        type_preferences={t: default_type_preference(t) for t in NotificationType},
        created_at=now,
        updated_at=now,
    )


class PreferenceResolver:
    """Applies a resident's preferences to a notification.

    Quiet hours are evaluated in the community time zone as a half-open
    window [start, end): the end minute itself is outside the window, so a
    notification deferred to the end boundary is deliverable when it wakes.

    Args:
        timezone_name: IANA zone of the community (default: UTC)
    """

    def __init__(self, timezone_name: str = "UTC"):
        self._tz = pytz.timezone(timezone_name)

    def effective_channels(
        self, notification: Notification, prefs: NotificationPreferences
    ) -> EffectiveChannels:
        """Channels this notification may use, in requested order.

        Requested channels are intersected with the type's configured channels
        (when the type has a preference) and with the global toggles. A
        disabled type cancels the notification.
        """
        type_pref = prefs.type_preferences.get(notification.type)
        if type_pref is not None and not type_pref.enabled:
            return EffectiveChannels(channels=[], cancelled=True)

        channels = [
            channel
            for channel in notification.channels
            if (type_pref is None or channel in type_pref.channels)
            and prefs.channel_enabled(channel)
        ]
        return EffectiveChannels(channels=channels, cancelled=False)

    def _local(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self._tz)

    def is_quiet_hours(self, prefs: NotificationPreferences, now: datetime) -> bool:
        """True if ``now`` falls inside the resident's quiet hours.

        The window is half-open: the start minute is quiet, the end minute
        is not. start == end is an empty window.
        """
        quiet = prefs.quiet_hours
        if quiet is None:
            return False

        local = self._local(now)
        minutes = local.hour * 60 + local.minute
        start, end = quiet.start_minutes, quiet.end_minutes

        if start <= end:
            return start <= minutes < end
        return minutes >= start or minutes < end

    def next_available_time(
        self, prefs: NotificationPreferences, now: datetime
    ) -> datetime:
        """Next end-of-quiet-hours boundary after ``now``, in UTC.

        Without quiet hours the answer is ``now``.
        """
        quiet = prefs.quiet_hours
        if quiet is None:
            return now

        local = self._local(now)
        end_clock = time(quiet.end_minutes // 60, quiet.end_minutes % 60)
        candidate = self._tz.localize(datetime.combine(local.date(), end_clock))
        if candidate <= local:
            candidate = self._tz.localize(
                datetime.combine(local.date() + timedelta(days=1), end_clock)
            )
        return candidate.astimezone(timezone.utc)


class PreferencesService:
    """CRUD for ``notification_preferences`` documents.

    Documents are created lazily with defaults the first time a resident's
    preferences are read.
    """

    def __init__(self, repository: DocumentRepository):
        self._repository = repository

    def _save(self, prefs: NotificationPreferences) -> NotificationPreferences:
        self._repository.set(PREFERENCES_COLLECTION, prefs.user_id, prefs.model_dump())
        return prefs

    def get(self, user_id: str, now: Optional[datetime] = None) -> NotificationPreferences:
        doc = self._repository.get(PREFERENCES_COLLECTION, user_id)
        if doc is not None:
            return NotificationPreferences.model_validate(doc)

        prefs = default_preferences(user_id, now)
        logger.info("notification_preferences_created", user_id=user_id)
        return self._save(prefs)

    def update(
        self,
        user_id: str,
        patch: PreferencesUpdate,
        now: Optional[datetime] = None,
    ) -> NotificationPreferences:
        """Apply a deep-merge patch.

        Top-level toggles replace, ``type_preferences`` merge per type and per
        field, ``quiet_hours`` merges per bound (explicit null clears).
        """
        now = now or utc_now()
        current = self.get(user_id, now)
        fields = patch.model_fields_set

        changes = {
            name: getattr(patch, name)
            for name in ("enable_push", "enable_email", "enable_sms", "enable_in_app")
            if name in fields and getattr(patch, name) is not None
        }
        if "quiet_hours" in fields:
            changes["quiet_hours"] = self._merge_quiet_hours(
                current.quiet_hours, patch.quiet_hours
            )

        type_preferences = dict(current.type_preferences)
        for notification_type, type_patch in (patch.type_preferences or {}).items():
            base = type_preferences.get(notification_type) or default_type_preference(
                notification_type
            )
            type_preferences[notification_type] = base.model_copy(
                update=type_patch.model_dump(exclude_unset=True, exclude_none=True)
            )
            if type_patch.channels is not None:
                # Re-validate to dedupe channels
                type_preferences[notification_type] = TypePreference.model_validate(
                    type_preferences[notification_type].model_dump()
                )

        updated = current.model_copy(
            update={**changes, "type_preferences": type_preferences, "updated_at": now}
        )
        logger.info(
            "notification_preferences_updated",
            user_id=user_id,
            fields=sorted(fields),
        )
        return self._save(updated)

    @staticmethod
    def _merge_quiet_hours(
        current: Optional[QuietHours], patch: Optional[QuietHoursPatch]
    ) -> Optional[QuietHours]:
        if patch is None:
            return None
        start = patch.start or (current.start if current else None)
        end = patch.end or (current.end if current else None)
        if start is None or end is None:
            raise ValidationError("quiet_hours needs both start and end")
        return QuietHours(start=start, end=end)

    def reset(self, user_id: str, now: Optional[datetime] = None) -> NotificationPreferences:
        """Replace preferences with defaults."""
        logger.info("notification_preferences_reset", user_id=user_id)
        return self._save(default_preferences(user_id, now))

    def toggle_type(
        self,
        user_id: str,
        notification_type: NotificationType,
        enabled: bool,
        now: Optional[datetime] = None,
    ) -> NotificationPreferences:
        """Enable or disable a single notification type."""
        now = now or utc_now()
        current = self.get(user_id, now)
        type_preferences = dict(current.type_preferences)
        base = type_preferences.get(notification_type) or default_type_preference(
            notification_type
        )
        type_preferences[notification_type] = base.model_copy(update={"enabled": enabled})
        logger.info(
            "notification_type_toggled",
            user_id=user_id,
            notification_type=notification_type.value,
            enabled=enabled,
        )
        return self._save(
            current.model_copy(
                update={"type_preferences": type_preferences, "updated_at": now}
            )
        )

    def set_quiet_hours(
        self,
        user_id: str,
        quiet_hours: Optional[QuietHours],
        now: Optional[datetime] = None,
    ) -> NotificationPreferences:
        """Set quiet hours, or clear them with None."""
        now = now or utc_now()
        if quiet_hours is not None and not isinstance(quiet_hours, QuietHours):
            raise ValidationError("quiet_hours must be a QuietHours value or None")
        current = self.get(user_id, now)
        logger.info(
            "quiet_hours_updated",
            user_id=user_id,
            cleared=quiet_hours is None,
        )
        return self._save(
            current.model_copy(update={"quiet_hours": quiet_hours, "updated_at": now})
        )
