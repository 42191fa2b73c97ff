"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.dependencies import (
    DomainNotifierDep,
    NotificationServiceDep,
    SettingsDep,
)
from infrastructure.services.providers import (
    get_channel_registry,
    get_document_repository,
    get_domain_notifier,
    get_notification_orchestrator,
    get_notification_service,
    get_notification_store,
    get_settings,
    get_user_directory,
)

__all__ = [
    "SettingsDep",
    "NotificationServiceDep",
    "DomainNotifierDep",
    "get_channel_registry",
    "get_document_repository",
    "get_domain_notifier",
    "get_notification_orchestrator",
    "get_notification_service",
    "get_notification_store",
    "get_settings",
    "get_user_directory",
]
