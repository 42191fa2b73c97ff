"""DynamoDB-backed document repository for multi-instance deployments.

Table Schema:
    One table per collection named ``{table_prefix}{collection}``.
    PK: id (String)
    Attributes: document fields. Datetimes are stored as fixed-width ISO-8601
    UTC strings so lexicographic comparisons in filter expressions follow
    chronological order.

Queries are scans with a FilterExpression; ordering and limits are applied
after the scan completes because a scan has no ordering guarantee.
"""

import time
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from infrastructure.logging import get_module_logger
from infrastructure.operations import classify_aws_error
from infrastructure.persistence.repository import (
    Document,
    DocumentNotFoundError,
    FieldFilter,
    RepositoryError,
    sort_documents,
)

logger = get_module_logger()

DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
BATCH_WRITE_LIMIT = 25
BATCH_WRITE_MAX_ATTEMPTS = 5
BATCH_WRITE_BACKOFF_SECONDS = 0.05
TRANSACT_WRITE_LIMIT = 100

_COMPARISON_OPERATORS = {
    "==": "=",
    "!=": "<>",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
}


def encode_value(value: Any) -> Any:
    """Convert a Python value into something TypeSerializer accepts."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime(DATETIME_FORMAT)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else str(k)): encode_value(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    """Convert deserialized DynamoDB values back into plain Python values."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


class DynamoDBDocumentRepository:
    """DynamoDB implementation of DocumentRepository.

    Provides:
    - Atomic compare-and-set via ConditionExpression
    - Batched writes (BatchWriteItem for puts, TransactWriteItems for updates)
    - Shared state across multiple API and sweep instances

    Args:
        table_prefix: Prefix for table names
        region_name: AWS region
        endpoint_url: Optional endpoint override (local DynamoDB)
        client: Optional pre-built boto3 DynamoDB client
    """

    def __init__(
        self,
        table_prefix: str = "",
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.table_prefix = table_prefix
        self._client = client or boto3.client(
            "dynamodb", region_name=region_name, endpoint_url=endpoint_url
        )
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

        logger.info(
            "dynamodb_document_repository_initialized",
            table_prefix=table_prefix,
            region=region_name,
        )

    def _table(self, collection: str) -> str:
        return f"{self.table_prefix}{collection}"

    def _serialize(self, value: Any) -> Dict[str, Any]:
        return self._serializer.serialize(encode_value(value))

    def _serialize_item(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        return {k: self._serialize(v) for k, v in data.items()}

    def _deserialize_item(self, item: Mapping[str, Any]) -> Document:
        return {k: decode_value(self._deserializer.deserialize(v)) for k, v in item.items()}

    def _key(self, doc_id: str) -> Dict[str, Any]:
        return {"id": {"S": doc_id}}

    def _call(self, method: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            return getattr(self._client, method)(**kwargs)
        except (ClientError, BotoCoreError) as e:
            result = classify_aws_error(e)
            logger.error(
                "dynamodb_call_failed",
                method=method,
                table=kwargs.get("TableName"),
                error=result.message,
                error_code=result.error_code,
            )
            raise RepositoryError(result.message, error_code=result.error_code) from e

    @staticmethod
    def _is_condition_failure(exc: RepositoryError) -> bool:
        return exc.error_code in (
            "ConditionalCheckFailedException",
            "TransactionCanceledException",
        )

    def _set_expression(
        self, fields: Mapping[str, Any], prefix: str = "f"
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments = []
        for i, (field, value) in enumerate(fields.items()):
            names[f"#{prefix}{i}"] = field
            values[f":{prefix}{i}"] = self._serialize(value)
            assignments.append(f"#{prefix}{i} = :{prefix}{i}")
        return "SET " + ", ".join(assignments), names, values

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        response = self._call(
            "get_item",
            TableName=self._table(collection),
            Key=self._key(doc_id),
            ConsistentRead=True,
        )
        item = response.get("Item")
        return self._deserialize_item(item) if item else None

    def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        item = self._serialize_item({**data, "id": doc_id})
        self._call("put_item", TableName=self._table(collection), Item=item)

    def update(
        self, collection: str, doc_id: str, fields: Mapping[str, Any]
    ) -> None:
        expression, names, values = self._set_expression(fields)
        try:
            self._call(
                "update_item",
                TableName=self._table(collection),
                Key=self._key(doc_id),
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except RepositoryError as e:
            if self._is_condition_failure(e):
                raise DocumentNotFoundError(collection, doc_id) from e
            raise

    def delete(self, collection: str, doc_id: str) -> bool:
        response = self._call(
            "delete_item",
            TableName=self._table(collection),
            Key=self._key(doc_id),
            ReturnValues="ALL_OLD",
        )
        return bool(response.get("Attributes"))

    def batch_set(self, collection: str, docs: Mapping[str, Mapping[str, Any]]) -> None:
        table = self._table(collection)
        requests = [
            {"PutRequest": {"Item": self._serialize_item({**data, "id": doc_id})}}
            for doc_id, data in docs.items()
        ]
        for start in range(0, len(requests), BATCH_WRITE_LIMIT):
            pending: Dict[str, List[Dict[str, Any]]] = {
                table: requests[start : start + BATCH_WRITE_LIMIT]
            }
            attempt = 0
            while pending:
                if attempt >= BATCH_WRITE_MAX_ATTEMPTS:
                    logger.error(
                        "batch_set_unprocessed",
                        table=table,
                        remaining=len(pending.get(table, [])),
                        attempts=attempt,
                    )
                    raise RepositoryError(
                        f"batch_write_item left unprocessed items in {table}",
                        error_code="UnprocessedItems",
                    )
                if attempt:
                    time.sleep(BATCH_WRITE_BACKOFF_SECONDS * 2 ** (attempt - 1))
                response = self._call("batch_write_item", RequestItems=pending)
                pending = response.get("UnprocessedItems") or {}
                attempt += 1
        logger.debug("batch_set_applied", table=table, count=len(requests))

    def batch_update(
        self, collection: str, updates: Mapping[str, Mapping[str, Any]]
    ) -> None:
        table = self._table(collection)
        items = []
        for doc_id, fields in updates.items():
            expression, names, values = self._set_expression(fields)
            items.append(
                {
                    "Update": {
                        "TableName": table,
                        "Key": self._key(doc_id),
                        "UpdateExpression": expression,
                        "ConditionExpression": "attribute_exists(id)",
                        "ExpressionAttributeNames": names,
                        "ExpressionAttributeValues": values,
                    }
                }
            )
        for start in range(0, len(items), TRANSACT_WRITE_LIMIT):
            self._call(
                "transact_write_items",
                TransactItems=items[start : start + TRANSACT_WRITE_LIMIT],
            )
        logger.debug("batch_update_applied", table=table, count=len(items))

    def conditional_update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any],
    ) -> bool:
        expression, names, values = self._set_expression(fields)
        conditions = ["attribute_exists(id)"]
        for i, (field, value) in enumerate(expected.items()):
            names[f"#c{i}"] = field
            values[f":c{i}"] = self._serialize(value)
            if value is None:
                conditions.append(f"(attribute_not_exists(#c{i}) OR #c{i} = :c{i})")
            else:
                conditions.append(f"#c{i} = :c{i}")
        try:
            self._call(
                "update_item",
                TableName=self._table(collection),
                Key=self._key(doc_id),
                UpdateExpression=expression,
                ConditionExpression=" AND ".join(conditions),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except RepositoryError as e:
            if self._is_condition_failure(e):
                logger.debug(
                    "conditional_update_rejected",
                    collection=collection,
                    doc_id=doc_id,
                )
                return False
            raise
        return True

    def _filter_expression(
        self, filters: Sequence[FieldFilter]
    ) -> Tuple[Optional[str], Dict[str, str], Dict[str, Any]]:
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        clauses = []
        for i, f in enumerate(filters):
            name = f"#q{i}"
            names[name] = f.field
            if f.op == "is_null":
                values[f":q{i}"] = {"NULL": True}
                clause = f"(attribute_not_exists({name}) OR {name} = :q{i})"
                clauses.append(clause if f.value else f"NOT {clause}")
            elif f.op == "in":
                keys = []
                for j, option in enumerate(f.value):
                    values[f":q{i}_{j}"] = self._serialize(option)
                    keys.append(f":q{i}_{j}")
                clauses.append(f"{name} IN ({', '.join(keys)})" if keys else "1 = 0")
            else:
                values[f":q{i}"] = self._serialize(f.value)
                clauses.append(f"{name} {_COMPARISON_OPERATORS[f.op]} :q{i}")
        if not clauses:
            return None, names, values
        return " AND ".join(clauses), names, values

    def _scan(self, collection: str, filters: Sequence[FieldFilter]) -> List[Document]:
        expression, names, values = self._filter_expression(filters)
        kwargs: Dict[str, Any] = {"TableName": self._table(collection)}
        if expression:
            kwargs["FilterExpression"] = expression
            kwargs["ExpressionAttributeNames"] = names
            kwargs["ExpressionAttributeValues"] = values

        documents: List[Document] = []
        while True:
            response = self._call("scan", **kwargs)
            documents.extend(self._deserialize_item(i) for i in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return documents

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        documents = sort_documents(self._scan(collection, filters), order_by, descending)
        if limit is not None:
            documents = documents[:limit]
        return documents

    def count(self, collection: str, filters: Sequence[FieldFilter] = ()) -> int:
        return len(self._scan(collection, filters))
