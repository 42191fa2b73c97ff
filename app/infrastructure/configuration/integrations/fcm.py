"""Firebase Cloud Messaging integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class FcmSettings(IntegrationSettings):
    """FCM HTTP v1 API configuration.

    Environment Variables:
        FCM_PROJECT_ID: Firebase project identifier
        FCM_SERVICE_ACCOUNT_JSON: Service account credentials (JSON string)
        FCM_API_URL: Base URL of the FCM API
        FCM_TIMEOUT_SECONDS: HTTP timeout for send calls (default: 10)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        project = settings.fcm.FCM_PROJECT_ID
        ```
    """

    FCM_PROJECT_ID: str = Field(default="", alias="FCM_PROJECT_ID")
    FCM_SERVICE_ACCOUNT_JSON: str | None = Field(
        default=None, alias="FCM_SERVICE_ACCOUNT_JSON"
    )
    FCM_API_URL: str = Field(
        default="https://fcm.googleapis.com", alias="FCM_API_URL"
    )
    FCM_TIMEOUT_SECONDS: int = Field(default=10, alias="FCM_TIMEOUT_SECONDS")
