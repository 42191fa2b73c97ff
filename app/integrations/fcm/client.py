"""Firebase Cloud Messaging HTTP v1 client.

Sends one message per call to
``POST {FCM_API_URL}/v1/projects/{project}/messages:send`` using an OAuth2
access token minted from a service account.

Usage:
    client = FcmClient(settings.fcm)
    result = client.send({"token": "...", "notification": {...}})
    if result.is_success:
        message_id = result.data["message_id"]
"""

import json
import threading
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import ProviderError
from infrastructure.operations import OperationResult, classify_http_error

if TYPE_CHECKING:
    from infrastructure.configuration.integrations import FcmSettings

logger = get_module_logger()

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
PROVIDER = "fcm"


class FcmClient:
    """Thread-safe FCM sender.

    Credentials are loaded lazily and refreshed when expired; a lock keeps
    concurrent channel sends from refreshing the same token twice.

    Args:
        settings: FcmSettings
        session: Optional requests.Session (tests inject a mock)
        credentials: Optional pre-built google-auth credentials
    """

    def __init__(
        self,
        settings: "FcmSettings",
        session: Optional[requests.Session] = None,
        credentials: Any = None,
    ):
        self._project_id = settings.FCM_PROJECT_ID
        self._credentials_json = settings.FCM_SERVICE_ACCOUNT_JSON
        self._api_url = settings.FCM_API_URL.rstrip("/")
        self._timeout = settings.FCM_TIMEOUT_SECONDS
        self._session = session or requests.Session()
        self._credentials = credentials
        self._lock = threading.Lock()

    @property
    def send_url(self) -> str:
        return f"{self._api_url}/v1/projects/{self._project_id}/messages:send"

    def _load_credentials(self) -> Any:
        if not self._credentials_json:
            raise ProviderError(
                "FCM_SERVICE_ACCOUNT_JSON is missing",
                provider=PROVIDER,
                error_code="MISSING_CREDENTIALS",
            )
        try:
            info = json.loads(self._credentials_json)
        except json.JSONDecodeError as e:
            logger.error("fcm_invalid_credentials_json", error=str(e))
            raise ProviderError(
                "Invalid FCM service account JSON",
                provider=PROVIDER,
                error_code="INVALID_CREDENTIALS",
            ) from e
        return service_account.Credentials.from_service_account_info(
            info, scopes=[FCM_SCOPE]
        )

    def _access_token(self) -> str:
        with self._lock:
            if self._credentials is None:
                self._credentials = self._load_credentials()
            if not self._credentials.valid:
                try:
                    self._credentials.refresh(GoogleAuthRequest())
                except GoogleAuthError as e:
                    logger.error("fcm_token_refresh_failed", error=str(e))
                    raise ProviderError(
                        f"FCM token refresh failed: {e}",
                        provider=PROVIDER,
                        error_code="AUTH_REFRESH_FAILED",
                    ) from e
            return self._credentials.token

    def send(self, message: Dict[str, Any]) -> OperationResult:
        """Send one FCM message.

        Args:
            message: FCM ``message`` object (token, notification, data, android, apns)

        Returns:
            OperationResult with ``{"message_id": ...}`` on success

        Raises:
            ProviderError: If the client is not configured
        """
        if not self._project_id:
            raise ProviderError(
                "FCM_PROJECT_ID is missing",
                provider=PROVIDER,
                error_code="MISSING_PROJECT",
            )

        headers = {
            "Authorization": f"Bearer {self._access_token()}",
            "Content-Type": "application/json; UTF-8",
        }
        try:
            response = self._session.post(
                self.send_url,
                data=json.dumps({"message": message}),
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            result = classify_http_error(e, provider=PROVIDER)
            logger.warning(
                "fcm_send_failed",
                error=result.message,
                error_code=result.error_code,
            )
            return result

        message_id = response.json().get("name")
        return OperationResult.success(
            data={"message_id": message_id}, message="Sent via FCM"
        )

    def health_check(self) -> OperationResult:
        """Validate configuration by minting an access token."""
        try:
            self._access_token()
        except ProviderError as e:
            return OperationResult.permanent_error(str(e), error_code=e.error_code)
        return OperationResult.success(
            data={"project_id": self._project_id}, message="FCM credentials valid"
        )
