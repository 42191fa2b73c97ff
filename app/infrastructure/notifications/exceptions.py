"""Notification engine exceptions."""

from typing import Optional


class NotificationError(Exception):
    """Base class for notification engine errors."""


class ValidationError(NotificationError):
    """A request failed validation (unknown type, bad channels, bad times)."""


class NotFoundError(NotificationError):
    """A notification, preference document or delivery log does not exist."""


class UnauthorizedError(NotificationError):
    """The caller does not own the notification it tried to modify."""


class ProviderError(NotificationError):
    """A delivery provider is misconfigured or rejected a request.

    Attributes:
        provider: Provider name (fcm, gc_notify)
        error_code: Machine error code
    """

    def __init__(
        self, message: str, provider: str, error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.provider = provider
        self.error_code = error_code


class ExhaustedRetriesError(NotificationError):
    """A notification has used its whole retry budget."""

    def __init__(self, notification_id: str, retry_count: int):
        super().__init__(
            f"Notification {notification_id} exhausted retries ({retry_count})"
        )
        self.notification_id = notification_id
        self.retry_count = retry_count
