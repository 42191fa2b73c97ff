"""Document persistence layer.

A small document-store abstraction (collections of JSON-like documents keyed
by id) used for notifications, preferences, delivery logs and user profiles.

Backends:
    - InMemoryDocumentRepository: thread-safe dict store (development, tests)
    - DynamoDBDocumentRepository: one DynamoDB table per collection

The only concurrency primitive the engine relies on is
``conditional_update``, an atomic compare-and-set on a single document.
"""

from infrastructure.persistence.repository import (
    DocumentNotFoundError,
    DocumentRepository,
    FieldFilter,
    RepositoryError,
)
from infrastructure.persistence.memory import InMemoryDocumentRepository
from infrastructure.persistence.dynamodb import DynamoDBDocumentRepository
from infrastructure.persistence.factory import create_document_repository

__all__ = [
    "DocumentNotFoundError",
    "DocumentRepository",
    "DynamoDBDocumentRepository",
    "FieldFilter",
    "InMemoryDocumentRepository",
    "RepositoryError",
    "create_document_repository",
]
