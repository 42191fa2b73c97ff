"""Notification persistence over the document repository.

Documents live in the ``notifications`` collection. Dispatch ownership uses
a claim: a conditional update from ``pending`` (or from an expired
``dispatching`` lease) to ``dispatching`` with a fresh claim token. Only the
holder of the token writes the dispatch result.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    Notification,
    NotificationQuery,
    NotificationStatus,
    new_id,
)
from infrastructure.persistence import (
    DocumentNotFoundError,
    DocumentRepository,
    FieldFilter,
)

logger = get_module_logger()

NOTIFICATIONS_COLLECTION = "notifications"


class NotificationStore:
    """Reads and writes Notification documents.

    Args:
        repository: Document repository backend
        claim_lease_seconds: How long a dispatch claim stays valid
    """

    def __init__(self, repository: DocumentRepository, claim_lease_seconds: int = 300):
        self._repository = repository
        self.claim_lease = timedelta(seconds=claim_lease_seconds)

    def save(self, notification: Notification) -> Notification:
        self._repository.set(
            NOTIFICATIONS_COLLECTION, notification.id, notification.model_dump()
        )
        return notification

    def save_many(self, notifications: List[Notification]) -> List[Notification]:
        """Persist several notifications in one batch write."""
        self._repository.batch_set(
            NOTIFICATIONS_COLLECTION,
            {n.id: n.model_dump() for n in notifications},
        )
        return notifications

    def get(self, notification_id: str) -> Optional[Notification]:
        doc = self._repository.get(NOTIFICATIONS_COLLECTION, notification_id)
        return Notification.model_validate(doc) if doc else None

    def update(self, notification_id: str, fields: Mapping[str, Any]) -> None:
        """Merge fields into an existing notification.

        Raises:
            DocumentNotFoundError: The notification does not exist
        """
        self._repository.update(NOTIFICATIONS_COLLECTION, notification_id, fields)

    def delete(self, notification_id: str) -> bool:
        return self._repository.delete(NOTIFICATIONS_COLLECTION, notification_id)

    def claim(self, notification: Notification, now: datetime) -> Optional[Notification]:
        """Take dispatch ownership of a notification.

        A pending notification is claimed only if its schedule has not moved
        since it was read. A dispatching one is claimed only if its lease has
        expired and nobody re-claimed it in between.

        Returns:
            The claimed notification, or None if another worker won.
        """
        if notification.status == NotificationStatus.PENDING:
            expected: Dict[str, Any] = {
                "status": NotificationStatus.PENDING,
                "next_attempt_at": notification.next_attempt_at,
            }
        elif (
            notification.status == NotificationStatus.DISPATCHING
            and notification.claim_expires_at is not None
            and notification.claim_expires_at <= now
        ):
            expected = {
                "status": NotificationStatus.DISPATCHING,
                "claim_token": notification.claim_token,
            }
        else:
            return None

        fields = {
            "status": NotificationStatus.DISPATCHING,
            "claim_token": new_id(),
            "claim_expires_at": now + self.claim_lease,
            "updated_at": now,
        }
        claimed = self._repository.conditional_update(
            NOTIFICATIONS_COLLECTION, notification.id, fields, expected
        )
        if not claimed:
            logger.debug("notification_claim_lost", notification_id=notification.id)
            return None
        return notification.model_copy(update=fields)

    def complete(self, notification: Notification) -> bool:
        """Write a dispatch result and release the claim.

        Returns:
            False if the claim was taken over by another worker, in which
            case nothing is written.

        Raises:
            DocumentNotFoundError: The notification was deleted mid-dispatch
        """
        fields = notification.model_dump(exclude={"id", "claim_token", "claim_expires_at"})
        fields.update({"claim_token": None, "claim_expires_at": None})
        written = self._repository.conditional_update(
            NOTIFICATIONS_COLLECTION,
            notification.id,
            fields,
            {"claim_token": notification.claim_token},
        )
        if written:
            return True
        if self._repository.get(NOTIFICATIONS_COLLECTION, notification.id) is None:
            raise DocumentNotFoundError(NOTIFICATIONS_COLLECTION, notification.id)
        logger.warning("notification_claim_superseded", notification_id=notification.id)
        return False

    def due(self, now: datetime, limit: int) -> List[Notification]:
        """Pending notifications whose next attempt is due, oldest first."""
        docs = self._repository.query(
            NOTIFICATIONS_COLLECTION,
            [
                FieldFilter("status", "==", NotificationStatus.PENDING),
                FieldFilter("next_attempt_at", "<=", now),
            ],
            order_by="next_attempt_at",
            limit=limit,
        )
        return [Notification.model_validate(doc) for doc in docs]

    def stale_claims(self, now: datetime, limit: int) -> List[Notification]:
        """Dispatching notifications whose claim lease has expired."""
        docs = self._repository.query(
            NOTIFICATIONS_COLLECTION,
            [
                FieldFilter("status", "==", NotificationStatus.DISPATCHING),
                FieldFilter("claim_expires_at", "<=", now),
            ],
            order_by="claim_expires_at",
            limit=limit,
        )
        return [Notification.model_validate(doc) for doc in docs]

    def query(self, query: NotificationQuery, limit: int) -> List[Notification]:
        """Notifications matching the query, newest first."""
        filters = []
        if query.user_id:
            filters.append(FieldFilter("user_id", "==", query.user_id))
        if query.type:
            filters.append(FieldFilter("type", "==", query.type))
        if query.status:
            filters.append(FieldFilter("status", "==", query.status))
        if query.priority:
            filters.append(FieldFilter("priority", "==", query.priority))
        if query.unread_only:
            filters.append(FieldFilter("read_at", "is_null", True))
        if query.start_date:
            filters.append(FieldFilter("created_at", ">=", query.start_date))
        if query.end_date:
            filters.append(FieldFilter("created_at", "<=", query.end_date))

        docs = self._repository.query(
            NOTIFICATIONS_COLLECTION,
            filters,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [Notification.model_validate(doc) for doc in docs]

    def unread_ids(self, user_id: str) -> List[str]:
        docs = self._repository.query(
            NOTIFICATIONS_COLLECTION,
            [
                FieldFilter("user_id", "==", user_id),
                FieldFilter("read_at", "is_null", True),
            ],
        )
        return [doc["id"] for doc in docs]

    def count_unread(self, user_id: str) -> int:
        return self._repository.count(
            NOTIFICATIONS_COLLECTION,
            [
                FieldFilter("user_id", "==", user_id),
                FieldFilter("read_at", "is_null", True),
            ],
        )

    def mark_read(self, notification_ids: List[str], read_at: datetime) -> None:
        """Set read_at on several notifications in one batch write."""
        if not notification_ids:
            return
        self._repository.batch_update(
            NOTIFICATIONS_COLLECTION,
            {nid: {"read_at": read_at, "updated_at": read_at} for nid in notification_ids},
        )
