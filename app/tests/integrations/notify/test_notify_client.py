import json
from unittest.mock import MagicMock, patch

import jwt
import pytest
import requests
from freezegun import freeze_time

from infrastructure.notifications.exceptions import ProviderError
from infrastructure.operations import OperationStatus
from integrations.notify import client as notify


# helper function to decode the token for testing
def decode_token(token, secret):
    return jwt.decode(
        token, key=secret, options={"verify_signature": True}, algorithms=["HS256"]
    )


@pytest.fixture
def session():
    session = MagicMock()
    session.post.return_value.json.return_value = {"id": "notify-123"}
    return session


@pytest.fixture
def client(mock_settings, session):
    return notify.NotifyClient(mock_settings.notify, session=session)


# Test that an exception is raised if the secret is missing
@patch("integrations.notify.client.logger")
def test_create_jwt_token_secret_missing(mock_logger):
    with pytest.raises(ValueError) as err:
        notify.create_jwt_token(None, "client_id")
    assert str(err.value) == "Missing secret key"
    mock_logger.error.assert_called_once_with(
        "jwt_token_creation_failed", error="Missing secret key"
    )


# Test that an exception is raised if the client_id is missing
@patch("integrations.notify.client.logger")
def test_create_jwt_token_client_id_missing(mock_logger):
    with pytest.raises(ValueError) as err:
        notify.create_jwt_token("secret", None)
    assert str(err.value) == "Missing client id"
    mock_logger.error.assert_called_once_with(
        "jwt_token_creation_failed", error="Missing client id"
    )


# Test that the token is created correctly and the type and alg headers are set correctly
def test_create_jwt_token_contains_correct_headers():
    token = notify.create_jwt_token("secret", "client_id")
    headers = jwt.get_unverified_header(token)
    assert headers["typ"] == "JWT"
    assert headers["alg"] == "HS256"


# Test that the claims headers are set correctly
def test_create_jwt_token_contains_correct_claims_headers():
    token = notify.create_jwt_token("secret", "client_id")
    decoded_token = decode_token(token, "secret")
    assert decoded_token["iss"] == "client_id"
    assert "iat" in decoded_token


# Test that the correct iat time in epoch seconds is set correctly
@freeze_time("2020-01-01 00:00:00")
def test_token_contains_correct_iat():
    token = notify.create_jwt_token("secret", "client_id")
    decoded_token = decode_token(token, "secret")
    assert decoded_token["iat"] == 1577836800


# Test that a missing service id is reported before any token is minted
@patch("integrations.notify.client.logger")
@patch("integrations.notify.client.create_jwt_token")
def test_authorization_header_missing_service_id(jwt_token_mock, mock_logger, mock_settings):
    mock_settings.notify.NOTIFY_SERVICE_ID = None
    client = notify.NotifyClient(mock_settings.notify, session=MagicMock())

    with pytest.raises(ProviderError) as err:
        client.create_authorization_header()

    assert str(err.value) == "NOTIFY_SERVICE_ID is missing"
    assert err.value.error_code == "MISSING_CREDENTIALS"
    mock_logger.error.assert_called_once_with(
        "authorization_header_creation_failed",
        error="NOTIFY_SERVICE_ID is missing",
    )
    jwt_token_mock.assert_not_called()


@patch("integrations.notify.client.create_jwt_token")
def test_authorization_header_missing_secret(jwt_token_mock, mock_settings):
    mock_settings.notify.NOTIFY_CLIENT_SECRET = ""
    client = notify.NotifyClient(mock_settings.notify, session=MagicMock())

    with pytest.raises(ProviderError):
        client.create_authorization_header()

    jwt_token_mock.assert_not_called()


@patch("integrations.notify.client.create_jwt_token")
def test_successful_creation_of_header(mock_jwt_token, client):
    mock_jwt_token.return_value = "mocked_jwt_token"

    header_key, header_value = client.create_authorization_header()

    assert header_key == "Authorization"
    assert header_value == "Bearer mocked_jwt_token"
    mock_jwt_token.assert_called_once_with(secret="client-secret", client_id="service-id")


@patch("integrations.notify.client.create_jwt_token", return_value="jwt")
def test_send_email(_, client, session):
    result = client.send_email(
        email_address="resident@example.com",
        personalisation={"title": "Payment Due", "body": "Pay by Friday"},
        reference="n1",
    )

    assert result.is_success
    assert result.data == {"notification_id": "notify-123"}
    session.post.assert_called_once_with(
        "https://api.notification.canada.ca/v2/notifications/email",
        data=json.dumps(
            {
                "email_address": "resident@example.com",
                "template_id": "email-template",
                "personalisation": {"title": "Payment Due", "body": "Pay by Friday"},
                "reference": "n1",
            }
        ),
        headers={"Authorization": "Bearer jwt", "Content-Type": "application/json"},
        timeout=10,
    )


@patch("integrations.notify.client.create_jwt_token", return_value="jwt")
def test_send_sms_without_reference(_, client, session):
    client.send_sms(phone_number="+15555550100", personalisation={"body": "Hi"})

    url = session.post.call_args[0][0]
    payload = json.loads(session.post.call_args.kwargs["data"])
    assert url.endswith("/v2/notifications/sms")
    assert payload["template_id"] == "sms-template"
    assert "reference" not in payload


@patch("integrations.notify.client.create_jwt_token", return_value="jwt")
def test_server_error_is_transient(_, client, session):
    response = MagicMock(status_code=503, headers={}, text="")
    session.post.return_value.raise_for_status.side_effect = requests.HTTPError(
        "503", response=response
    )

    result = client.send_email("resident@example.com", {"title": "t", "body": "b"})

    assert result.status == OperationStatus.TRANSIENT_ERROR
    assert result.error_code == "SERVER_ERROR"


@patch("integrations.notify.client.create_jwt_token", return_value="jwt")
def test_timeout_is_transient(_, client, session):
    session.post.side_effect = requests.Timeout("slow")

    result = client.send_sms("+15555550100", {"body": "b"})

    assert result.is_retryable
    assert result.error_code == "TIMEOUT"


def test_health_check(client, mock_settings):
    assert client.health_check().is_success

    mock_settings.notify.NOTIFY_CLIENT_SECRET = None
    unconfigured = notify.NotifyClient(mock_settings.notify, session=MagicMock())
    result = unconfigured.health_check()

    assert result.status == OperationStatus.PERMANENT_ERROR
    assert result.error_code == "MISSING_CREDENTIALS"
