"""Infrastructure modules for the notification engine.

Centralized infrastructure components:
- configuration: Settings management (Settings, NotificationSettings)
- identity: Resident contact profiles (UserProfile, UserDirectory)
- logging: Structured logging (get_module_logger, bind_request_context)
- notifications: Delivery engine (orchestrator, dispatcher, channels, service)
- operations: Operation results and error classification
- persistence: Document repository (memory, DynamoDB)
- services: Dependency injection services (SettingsDep, NotificationServiceDep)
"""

# Configuration
from infrastructure.configuration import Settings

# Identity
from infrastructure.identity import UserProfile

# Logging
from infrastructure.logging import get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "Settings",
    # Identity
    "UserProfile",
    # Logging
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
