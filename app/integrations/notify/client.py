"""GC Notify client.

Sends email and SMS through the GC Notify v2 API using a generic template
per channel with ``title`` and ``body`` personalisation.
"""

import calendar
import json
import time
from typing import TYPE_CHECKING, Any, Dict, Optional

import jwt
import requests

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import ProviderError
from infrastructure.operations import OperationResult, classify_http_error

if TYPE_CHECKING:
    from infrastructure.configuration.integrations import NotifySettings

logger = get_module_logger()

PROVIDER = "gc_notify"
EMAIL_ENDPOINT = "/v2/notifications/email"
SMS_ENDPOINT = "/v2/notifications/sms"


# generate the epoch seconds for the jwt token
def epoch_seconds():
    return calendar.timegm(time.gmtime())


def create_jwt_token(secret, client_id):
    """
    Generate a JWT Token for the Notify API

    Tokens have a header consisting of:
    {
        "typ": "JWT",
        "alg": "HS256"
    }

    Claims are:
    iss: identifier for the client (service id)
    iat: epoch seconds for the token (UTC)

    Returns a JWT token for this request
    """
    if not secret:
        logger.error("jwt_token_creation_failed", error="Missing secret key")
        raise ValueError("Missing secret key")
    if not client_id:
        logger.error("jwt_token_creation_failed", error="Missing client id")
        raise ValueError("Missing client id")

    headers = {"typ": "JWT", "alg": "HS256"}
    claims = {"iss": client_id, "iat": epoch_seconds()}
    return jwt.encode(payload=claims, key=secret, headers=headers)


class NotifyClient:
    """GC Notify sender for the email and SMS channels.

    Args:
        settings: NotifySettings
        session: Optional requests.Session (tests inject a mock)
    """

    def __init__(
        self, settings: "NotifySettings", session: Optional[requests.Session] = None
    ):
        self._service_id = settings.NOTIFY_SERVICE_ID
        self._secret = settings.NOTIFY_CLIENT_SECRET
        self._api_url = settings.NOTIFY_API_URL.rstrip("/")
        self.email_template_id = settings.NOTIFY_EMAIL_TEMPLATE_ID
        self.sms_template_id = settings.NOTIFY_SMS_TEMPLATE_ID
        self._timeout = settings.NOTIFY_TIMEOUT_SECONDS
        self._session = session or requests.Session()

    def create_authorization_header(self):
        """Create the authorization header for the Notify API."""
        if not self._service_id:
            error = "NOTIFY_SERVICE_ID is missing"
            logger.error("authorization_header_creation_failed", error=error)
            raise ProviderError(error, provider=PROVIDER, error_code="MISSING_CREDENTIALS")
        if not self._secret:
            error = "NOTIFY_CLIENT_SECRET is missing"
            logger.error("authorization_header_creation_failed", error=error)
            raise ProviderError(error, provider=PROVIDER, error_code="MISSING_CREDENTIALS")

        token = create_jwt_token(secret=self._secret, client_id=self._service_id)
        return "Authorization", "Bearer {}".format(token)

    def post_event(self, endpoint: str, payload: Dict[str, Any]) -> OperationResult:
        """Post a notification request to Notify.

        Returns:
            OperationResult with ``{"notification_id": ...}`` on success
        """
        header_key, header_value = self.create_authorization_header()
        header = {header_key: header_value, "Content-Type": "application/json"}

        try:
            response = self._session.post(
                self._api_url + endpoint,
                data=json.dumps(payload),
                headers=header,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            result = classify_http_error(e, provider=PROVIDER)
            logger.warning(
                "gc_notify_request_failed",
                endpoint=endpoint,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        return OperationResult.success(
            data={"notification_id": response.json().get("id")},
            message="Accepted by GC Notify",
        )

    def send_email(
        self,
        email_address: str,
        personalisation: Dict[str, str],
        reference: Optional[str] = None,
    ) -> OperationResult:
        payload: Dict[str, Any] = {
            "email_address": email_address,
            "template_id": self.email_template_id,
            "personalisation": personalisation,
        }
        if reference:
            payload["reference"] = reference
        return self.post_event(EMAIL_ENDPOINT, payload)

    def send_sms(
        self,
        phone_number: str,
        personalisation: Dict[str, str],
        reference: Optional[str] = None,
    ) -> OperationResult:
        payload: Dict[str, Any] = {
            "phone_number": phone_number,
            "template_id": self.sms_template_id,
            "personalisation": personalisation,
        }
        if reference:
            payload["reference"] = reference
        return self.post_event(SMS_ENDPOINT, payload)

    def health_check(self) -> OperationResult:
        """Check that credentials produce a signed token."""
        try:
            self.create_authorization_header()
        except ProviderError as e:
            return OperationResult.permanent_error(str(e), error_code=e.error_code)
        return OperationResult.success(
            data={"api_url": self._api_url}, message="GC Notify API credentials valid"
        )
