from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from api.dependencies.identity import CurrentUserId
from infrastructure.notifications import (
    NotificationPreferences,
    NotificationType,
    PreferencesUpdate,
    QuietHours,
)
from infrastructure.services import NotificationServiceDep

router = APIRouter(prefix="/notifications/preferences", tags=["Notification Preferences"])


class TypeToggle(BaseModel):
    enabled: bool


class QuietHoursUpdate(BaseModel):
    quiet_hours: Optional[QuietHours] = None


@router.get("", response_model=NotificationPreferences)
def get_preferences(user_id: CurrentUserId, service: NotificationServiceDep):
    """Caller's preferences; defaults are created on first access."""
    return service.get_preferences(user_id)


@router.put("", response_model=NotificationPreferences)
def update_preferences(
    patch: PreferencesUpdate,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    """Deep-merge patch. Send ``quiet_hours: null`` to clear quiet hours."""
    return service.update_preferences(user_id, patch)


@router.post("/reset", response_model=NotificationPreferences)
def reset_preferences(user_id: CurrentUserId, service: NotificationServiceDep):
    return service.reset_preferences(user_id)


@router.put("/toggle/{notification_type}", response_model=NotificationPreferences)
def toggle_type(
    notification_type: NotificationType,
    toggle: TypeToggle,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    return service.toggle_type(user_id, notification_type, toggle.enabled)


@router.put("/quiet-hours", response_model=NotificationPreferences)
def set_quiet_hours(
    update: QuietHoursUpdate,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    """Set quiet hours, or clear them with ``{"quiet_hours": null}``."""
    return service.set_quiet_hours(user_id, update.quiet_hours)
