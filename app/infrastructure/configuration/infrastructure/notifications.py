"""Notification engine infrastructure settings."""

import pytz
from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings


class NotificationSettings(InfrastructureSettings):
    """Delivery engine configuration.

    Environment Variables:
        NOTIFICATIONS_MAX_RETRIES: Attempts before a notification is failed (default: 3)
        NOTIFICATIONS_BASE_DELAY_MINUTES: Backoff base in minutes (default: 1)
        NOTIFICATIONS_MAX_DELAY_MINUTES: Backoff cap in minutes (default: 1440)
        NOTIFICATIONS_SWEEP_ENABLED: Run the due-notification sweep (default: True)
        NOTIFICATIONS_SWEEP_INTERVAL_SECONDS: Sweep cadence (default: 60)
        NOTIFICATIONS_SWEEP_BATCH_SIZE: Records claimed per sweep (default: 100)
        NOTIFICATIONS_CLAIM_LEASE_SECONDS: In-flight claim lease (default: 300)
        NOTIFICATIONS_QUERY_LIMIT: Maximum rows returned by queries (default: 100)
        NOTIFICATIONS_DISPATCH_MAX_WORKERS: Thread pool size for fan-out (default: 8)
        NOTIFICATIONS_TIMEZONE: IANA zone used for quiet hours (default: UTC)

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ retry_count), max_delay)

        Example with defaults (base=1min, max_retries=3):
            First failure: 2 minutes
            Second failure: 4 minutes
            Third failure: notification is marked failed

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        lease = settings.notifications.claim_lease_seconds
        ```
    """

    max_retries: int = Field(
        default=3,
        alias="NOTIFICATIONS_MAX_RETRIES",
        description="Maximum delivery attempts before a notification is failed",
    )
    base_delay_minutes: int = Field(
        default=1,
        alias="NOTIFICATIONS_BASE_DELAY_MINUTES",
        description="Base delay for exponential backoff (minutes)",
    )
    max_delay_minutes: int = Field(
        default=1440,
        alias="NOTIFICATIONS_MAX_DELAY_MINUTES",
        description="Maximum delay for exponential backoff (minutes, 1 day)",
    )
    sweep_enabled: bool = Field(
        default=True,
        alias="NOTIFICATIONS_SWEEP_ENABLED",
        description="Run the background sweep for due notifications",
    )
    sweep_interval_seconds: int = Field(
        default=60,
        alias="NOTIFICATIONS_SWEEP_INTERVAL_SECONDS",
        description="Interval between sweeps (seconds)",
    )
    sweep_batch_size: int = Field(
        default=100,
        alias="NOTIFICATIONS_SWEEP_BATCH_SIZE",
        description="Number of due notifications processed per sweep",
    )
    claim_lease_seconds: int = Field(
        default=300,
        alias="NOTIFICATIONS_CLAIM_LEASE_SECONDS",
        description="Duration a worker holds its claim on a notification (seconds)",
    )
    query_limit: int = Field(
        default=100,
        alias="NOTIFICATIONS_QUERY_LIMIT",
        description="Maximum number of notifications returned by a query",
    )
    dispatch_max_workers: int = Field(
        default=8,
        alias="NOTIFICATIONS_DISPATCH_MAX_WORKERS",
        description="Thread pool size for channel and recipient fan-out",
    )
    timezone: str = Field(
        default="UTC",
        alias="NOTIFICATIONS_TIMEZONE",
        description="Community time zone used to evaluate quiet hours",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the zone name resolves."""
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @field_validator("max_retries", "sweep_batch_size", "dispatch_max_workers")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v
