"""GC Notify integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class NotifySettings(IntegrationSettings):
    """GC Notify API configuration.

    Email and SMS channels send through GC Notify using one generic template
    per channel that renders the ``title`` and ``body`` personalisation fields.

    Environment Variables:
        NOTIFY_SERVICE_ID: GC Notify service id (JWT issuer)
        NOTIFY_CLIENT_SECRET: GC Notify API secret (JWT signing key)
        NOTIFY_API_URL: GC Notify API endpoint URL
        NOTIFY_EMAIL_TEMPLATE_ID: Template used for email notifications
        NOTIFY_SMS_TEMPLATE_ID: Template used for SMS notifications
        NOTIFY_TIMEOUT_SECONDS: HTTP timeout (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        api_url = settings.notify.NOTIFY_API_URL
        ```
    """

    NOTIFY_SERVICE_ID: str | None = Field(default=None, alias="NOTIFY_SERVICE_ID")
    NOTIFY_CLIENT_SECRET: str | None = Field(
        default=None, alias="NOTIFY_CLIENT_SECRET"
    )
    NOTIFY_API_URL: str = Field(
        default="https://api.notification.canada.ca", alias="NOTIFY_API_URL"
    )
    NOTIFY_EMAIL_TEMPLATE_ID: str = Field(default="", alias="NOTIFY_EMAIL_TEMPLATE_ID")
    NOTIFY_SMS_TEMPLATE_ID: str = Field(default="", alias="NOTIFY_SMS_TEMPLATE_ID")
    NOTIFY_TIMEOUT_SECONDS: int = Field(default=10, alias="NOTIFY_TIMEOUT_SECONDS")
