"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the notification
engine using Pydantic BaseSettings with domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    NotificationSettings: Delivery engine settings class (for testing)
    PersistenceSettings: Document repository settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    retry_limit = settings.notifications.max_retries
    fcm_project = settings.fcm.FCM_PROJECT_ID
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure.notifications import (
    NotificationSettings,
)
from infrastructure.configuration.infrastructure.persistence import (
    PersistenceSettings,
)

__all__ = ["Settings", "NotificationSettings", "PersistenceSettings"]
