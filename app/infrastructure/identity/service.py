"""Resident directory lookups.

The directory is the engine's read-only view of portal users. The default
implementation reads the ``users`` collection of the document repository.
"""

from typing import List, Optional, Protocol

from pydantic import ValidationError

from infrastructure.identity.models import UserProfile
from infrastructure.logging import get_module_logger
from infrastructure.persistence import DocumentRepository, FieldFilter

logger = get_module_logger()

USERS_COLLECTION = "users"


class UserDirectory(Protocol):
    """Read-only access to resident profiles."""

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        """Return the profile or None if the user does not exist."""
        ...

    def list_active_user_ids(self) -> List[str]:
        """Return ids of every active resident."""
        ...


class RepositoryUserDirectory:
    """UserDirectory backed by the ``users`` document collection."""

    def __init__(self, repository: DocumentRepository):
        self._repository = repository

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        doc = self._repository.get(USERS_COLLECTION, user_id)
        if doc is None:
            return None
        try:
            return UserProfile.model_validate({**doc, "user_id": user_id})
        except ValidationError as e:
            # A malformed profile is treated like a missing one.
            logger.warning("user_profile_invalid", user_id=user_id, error=str(e))
            return None

    def list_active_user_ids(self) -> List[str]:
        docs = self._repository.query(
            USERS_COLLECTION, [FieldFilter("is_active", "==", True)]
        )
        return sorted(doc.get("user_id") or doc["id"] for doc in docs)

    def save_user(self, profile: UserProfile) -> None:
        """Upsert a profile (used by the portal sync and by tests)."""
        self._repository.set(
            USERS_COLLECTION,
            profile.user_id,
            {**profile.model_dump(), "id": profile.user_id},
        )
