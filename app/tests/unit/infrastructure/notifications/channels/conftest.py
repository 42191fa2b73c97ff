"""Fixtures for channel adapter tests."""

from unittest.mock import MagicMock

import pytest

from infrastructure.operations import OperationResult


@pytest.fixture
def fcm_client():
    client = MagicMock()
    client.send.return_value = OperationResult.success(
        data={"message_id": "projects/hoa-portal/messages/123"}
    )
    client.health_check.return_value = OperationResult.success()
    return client


@pytest.fixture
def notify_client():
    client = MagicMock()
    client.send_email.return_value = OperationResult.success(
        data={"notification_id": "notify-email-1"}
    )
    client.send_sms.return_value = OperationResult.success(
        data={"notification_id": "notify-sms-1"}
    )
    return client
