"""Resident identity and directory.

Exports:
    UserProfile: Contact data used for delivery
    UserDirectory: Lookup protocol
    RepositoryUserDirectory: Document-repository backed directory
"""

from infrastructure.identity.models import UserProfile
from infrastructure.identity.service import (
    RepositoryUserDirectory,
    UserDirectory,
    USERS_COLLECTION,
)

__all__ = [
    "RepositoryUserDirectory",
    "UserDirectory",
    "UserProfile",
    "USERS_COLLECTION",
]
