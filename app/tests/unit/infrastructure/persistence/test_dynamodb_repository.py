"""Unit tests for the DynamoDB document repository.

Uses a mocked low-level DynamoDB client; no AWS calls are made.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from infrastructure.persistence import (
    DocumentNotFoundError,
    DynamoDBDocumentRepository,
    FieldFilter,
    RepositoryError,
)
from infrastructure.persistence.dynamodb import (
    BATCH_WRITE_BACKOFF_SECONDS,
    BATCH_WRITE_MAX_ATTEMPTS,
    decode_value,
    encode_value,
)


class Color(str, Enum):
    RED = "red"


def client_error(code, operation="UpdateItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def repo(client):
    return DynamoDBDocumentRepository(table_prefix="hoa_", client=client)


@pytest.mark.unit
class TestEncoding:
    def test_datetimes_are_fixed_width_utc(self):
        toronto = timezone(timedelta(hours=-4))
        value = datetime(2024, 6, 3, 8, 0, tzinfo=toronto)

        assert encode_value(value) == "2024-06-03T12:00:00.000000Z"
        assert encode_value(datetime(2024, 6, 3, 12, 0)) == "2024-06-03T12:00:00.000000Z"

    def test_nested_values(self):
        encoded = encode_value({Color.RED: [1.5, Color.RED], "n": None})

        assert encoded == {"red": [Decimal("1.5"), "red"], "n": None}

    def test_decode_numbers(self):
        assert decode_value(Decimal("3")) == 3
        assert isinstance(decode_value(Decimal("3")), int)
        assert decode_value({"a": [Decimal("1.25")]}) == {"a": [1.25]}


@pytest.mark.unit
class TestReadsAndWrites:
    def test_get(self, repo, client):
        client.get_item.return_value = {
            "Item": {"id": {"S": "n1"}, "retry_count": {"N": "2"}, "read_at": {"NULL": True}}
        }

        doc = repo.get("notifications", "n1")

        assert doc == {"id": "n1", "retry_count": 2, "read_at": None}
        kwargs = client.get_item.call_args.kwargs
        assert kwargs["TableName"] == "hoa_notifications"
        assert kwargs["Key"] == {"id": {"S": "n1"}}
        assert kwargs["ConsistentRead"] is True

    def test_get_missing(self, repo, client):
        client.get_item.return_value = {}

        assert repo.get("notifications", "n1") is None

    def test_set_adds_id(self, repo, client):
        repo.set("notifications", "n1", {"status": Color.RED})

        item = client.put_item.call_args.kwargs["Item"]
        assert item == {"status": {"S": "red"}, "id": {"S": "n1"}}

    def test_update_missing_document(self, repo, client):
        client.update_item.side_effect = client_error("ConditionalCheckFailedException")

        with pytest.raises(DocumentNotFoundError):
            repo.update("notifications", "n1", {"read_at": None})

    def test_update_backend_failure(self, repo, client):
        client.update_item.side_effect = client_error("ThrottlingException")

        with pytest.raises(RepositoryError) as exc_info:
            repo.update("notifications", "n1", {"read_at": None})

        assert not isinstance(exc_info.value, DocumentNotFoundError)
        assert exc_info.value.error_code == "ThrottlingException"

    def test_connection_error(self, repo, client):
        client.get_item.side_effect = EndpointConnectionError(endpoint_url="http://x")

        with pytest.raises(RepositoryError) as exc_info:
            repo.get("notifications", "n1")

        assert exc_info.value.error_code == "CONNECTION_ERROR"

    def test_delete(self, repo, client):
        client.delete_item.return_value = {"Attributes": {"id": {"S": "n1"}}}
        assert repo.delete("notifications", "n1") is True

        client.delete_item.return_value = {}
        assert repo.delete("notifications", "n1") is False


@pytest.mark.unit
class TestBatches:
    @patch("infrastructure.persistence.dynamodb.time.sleep")
    def test_batch_set_chunks_and_retries_unprocessed(self, mock_sleep, repo, client):
        docs = {f"n{i}": {"i": i} for i in range(30)}
        leftover = {"hoa_notifications": [{"PutRequest": {"Item": {"id": {"S": "n0"}}}}]}
        client.batch_write_item.side_effect = [
            {"UnprocessedItems": leftover},
            {},
            {},
        ]

        repo.batch_set("notifications", docs)

        calls = client.batch_write_item.call_args_list
        assert len(calls) == 3
        assert len(calls[0].kwargs["RequestItems"]["hoa_notifications"]) == 25
        assert calls[1].kwargs["RequestItems"] == leftover
        assert len(calls[2].kwargs["RequestItems"]["hoa_notifications"]) == 5
        mock_sleep.assert_called_once_with(BATCH_WRITE_BACKOFF_SECONDS)

    @patch("infrastructure.persistence.dynamodb.time.sleep")
    def test_batch_set_gives_up_on_persistent_unprocessed(self, mock_sleep, repo, client):
        leftover = {"hoa_notifications": [{"PutRequest": {"Item": {"id": {"S": "n0"}}}}]}
        client.batch_write_item.return_value = {"UnprocessedItems": leftover}

        with pytest.raises(RepositoryError):
            repo.batch_set("notifications", {"n0": {"i": 0}})

        assert client.batch_write_item.call_count == BATCH_WRITE_MAX_ATTEMPTS
        delays = [c.args[0] for c in mock_sleep.call_args_list]
        assert delays == [
            BATCH_WRITE_BACKOFF_SECONDS * 2**i
            for i in range(BATCH_WRITE_MAX_ATTEMPTS - 1)
        ]

    def test_batch_update_uses_transaction(self, repo, client):
        repo.batch_update("notifications", {"n1": {"read_at": "x"}, "n2": {"read_at": "x"}})

        items = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert len(items) == 2
        assert items[0]["Update"]["ConditionExpression"] == "attribute_exists(id)"
        assert items[0]["Update"]["Key"] == {"id": {"S": "n1"}}


@pytest.mark.unit
class TestConditionalUpdate:
    def test_applied(self, repo, client):
        assert repo.conditional_update(
            "notifications",
            "n1",
            {"status": "dispatching"},
            {"status": "pending", "claim_token": None},
        )

        kwargs = client.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :f0"
        assert kwargs["ConditionExpression"] == (
            "attribute_exists(id) AND #c0 = :c0 AND "
            "(attribute_not_exists(#c1) OR #c1 = :c1)"
        )
        assert kwargs["ExpressionAttributeNames"] == {
            "#f0": "status",
            "#c0": "status",
            "#c1": "claim_token",
        }
        assert kwargs["ExpressionAttributeValues"][":c1"] == {"NULL": True}

    def test_condition_failure_returns_false(self, repo, client):
        client.update_item.side_effect = client_error("ConditionalCheckFailedException")

        assert (
            repo.conditional_update("notifications", "n1", {"a": 1}, {"status": "pending"})
            is False
        )

    def test_other_errors_raise(self, repo, client):
        client.update_item.side_effect = client_error("ResourceNotFoundException")

        with pytest.raises(RepositoryError):
            repo.conditional_update("notifications", "n1", {"a": 1}, {"status": "pending"})


@pytest.mark.unit
class TestQuery:
    def test_scan_paginates_sorts_and_limits(self, repo, client):
        client.scan.side_effect = [
            {
                "Items": [{"id": {"S": "a"}, "at": {"S": "2024-06-01"}}],
                "LastEvaluatedKey": {"id": {"S": "a"}},
            },
            {"Items": [{"id": {"S": "b"}, "at": {"S": "2024-06-03"}}]},
        ]

        docs = repo.query(
            "notifications",
            [FieldFilter("user_id", "==", "u1")],
            order_by="at",
            descending=True,
            limit=1,
        )

        assert [d["id"] for d in docs] == ["b"]
        first, second = client.scan.call_args_list
        assert first.kwargs["FilterExpression"] == "#q0 = :q0"
        assert first.kwargs["ExpressionAttributeValues"] == {":q0": {"S": "u1"}}
        assert second.kwargs["ExclusiveStartKey"] == {"id": {"S": "a"}}

    def test_filter_expressions(self, repo, client):
        client.scan.return_value = {"Items": []}

        repo.count(
            "notifications",
            [
                FieldFilter("read_at", "is_null", True),
                FieldFilter("claim_token", "is_null", False),
                FieldFilter("status", "in", ["pending", "dispatching"]),
                FieldFilter("next_attempt_at", "<=", datetime(2024, 6, 3, tzinfo=timezone.utc)),
            ],
        )

        kwargs = client.scan.call_args.kwargs
        assert kwargs["FilterExpression"] == (
            "(attribute_not_exists(#q0) OR #q0 = :q0) AND "
            "NOT (attribute_not_exists(#q1) OR #q1 = :q1) AND "
            "#q2 IN (:q2_0, :q2_1) AND "
            "#q3 <= :q3"
        )
        assert kwargs["ExpressionAttributeValues"][":q3"] == {
            "S": "2024-06-03T00:00:00.000000Z"
        }

    def test_no_filters(self, repo, client):
        client.scan.return_value = {"Items": []}

        assert repo.query("notifications") == []
        assert "FilterExpression" not in client.scan.call_args.kwargs
