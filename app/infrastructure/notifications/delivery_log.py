"""Append-only delivery log.

One DeliveryLog per channel attempt, stored in the
``notification_delivery_logs`` collection. Logs are never rewritten; the only
later change is a ``delivered`` transition reported by a provider receipt.
Logs outlive the notification they describe.
"""

from datetime import datetime
from typing import List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.exceptions import NotFoundError
from infrastructure.notifications.models import (
    DeliveryLog,
    DeliveryStatus,
    DeliveryTransition,
    utc_now,
)
from infrastructure.persistence import DocumentRepository, FieldFilter

logger = get_module_logger()

DELIVERY_LOGS_COLLECTION = "notification_delivery_logs"


class DeliveryLogger:
    """Persists and reads delivery logs."""

    def __init__(self, repository: DocumentRepository):
        self._repository = repository

    @staticmethod
    def _with_initial_transition(log: DeliveryLog) -> DeliveryLog:
        if log.transitions:
            return log
        return log.model_copy(
            update={
                "transitions": [
                    DeliveryTransition(
                        status=log.status, at=log.created_at, detail=log.error_message
                    )
                ]
            }
        )

    def append(self, log: DeliveryLog) -> DeliveryLog:
        """Persist a new attempt record."""
        log = self._with_initial_transition(log)
        self._repository.set(DELIVERY_LOGS_COLLECTION, log.id, log.model_dump())
        logger.debug(
            "delivery_log_appended",
            log_id=log.id,
            notification_id=log.notification_id,
            channel=log.channel.value,
            status=log.status.value,
        )
        return log

    def append_many(self, logs: List[DeliveryLog]) -> List[DeliveryLog]:
        """Persist several attempt records in one batch write."""
        if not logs:
            return []
        logs = [self._with_initial_transition(log) for log in logs]
        self._repository.batch_set(
            DELIVERY_LOGS_COLLECTION, {log.id: log.model_dump() for log in logs}
        )
        logger.debug("delivery_logs_appended", count=len(logs))
        return logs

    def get(self, log_id: str) -> DeliveryLog:
        doc = self._repository.get(DELIVERY_LOGS_COLLECTION, log_id)
        if doc is None:
            raise NotFoundError(f"Delivery log {log_id} not found")
        return DeliveryLog.model_validate(doc)

    def record_delivered(
        self,
        log_id: str,
        delivered_at: Optional[datetime] = None,
        provider_message_id: Optional[str] = None,
    ) -> DeliveryLog:
        """Append a ``delivered`` transition from a provider receipt.

        Already-delivered logs are returned unchanged. A receipt for a failed
        attempt is still recorded; the provider is the authority on delivery.

        Raises:
            NotFoundError: Unknown log id
        """
        log = self.get(log_id)
        if log.status == DeliveryStatus.DELIVERED:
            return log

        delivered_at = delivered_at or utc_now()
        fields = {
            "status": DeliveryStatus.DELIVERED,
            "delivered_at": delivered_at,
            "transitions": [
                t.model_dump()
                for t in [
                    *log.transitions,
                    DeliveryTransition(
                        status=DeliveryStatus.DELIVERED, at=delivered_at
                    ),
                ]
            ],
        }
        if provider_message_id and not log.provider_message_id:
            fields["provider_message_id"] = provider_message_id

        self._repository.update(DELIVERY_LOGS_COLLECTION, log_id, fields)
        logger.info(
            "delivery_receipt_recorded",
            log_id=log_id,
            notification_id=log.notification_id,
            channel=log.channel.value,
        )
        return log.model_copy(
            update={
                **fields,
                "transitions": [DeliveryTransition(**t) for t in fields["transitions"]],
            }
        )

    def for_notification(self, notification_id: str) -> List[DeliveryLog]:
        """All attempts for a notification, oldest first."""
        docs = self._repository.query(
            DELIVERY_LOGS_COLLECTION,
            [FieldFilter("notification_id", "==", notification_id)],
            order_by="created_at",
        )
        return [DeliveryLog.model_validate(doc) for doc in docs]

    def query(
        self,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[DeliveryLog]:
        """Logs filtered by recipient and creation time range (inclusive)."""
        filters = []
        if user_id:
            filters.append(FieldFilter("user_id", "==", user_id))
        if start:
            filters.append(FieldFilter("created_at", ">=", start))
        if end:
            filters.append(FieldFilter("created_at", "<=", end))
        docs = self._repository.query(
            DELIVERY_LOGS_COLLECTION, filters, order_by="created_at"
        )
        return [DeliveryLog.model_validate(doc) for doc in docs]
