"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common infrastructure dependencies.
"""

from typing import Annotated

from fastapi import Depends

from infrastructure.configuration import Settings
from infrastructure.notifications import DomainNotifier, NotificationService
from infrastructure.services.providers import (
    get_domain_notifier,
    get_notification_service,
    get_settings,
)

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Notification service facade
# Usage: service.create(...), service.mark_read(...), service.stats(...)
NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]

# Portal event entry points (reservations, payments, meetings, votes)
DomainNotifierDep = Annotated[DomainNotifier, Depends(get_domain_notifier)]

__all__ = [
    "SettingsDep",
    "NotificationServiceDep",
    "DomainNotifierDep",
]
