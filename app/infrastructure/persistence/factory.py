"""Factory for creating document repositories based on configuration."""

from typing import TYPE_CHECKING, Optional

from infrastructure.logging import get_module_logger
from infrastructure.persistence.dynamodb import DynamoDBDocumentRepository
from infrastructure.persistence.memory import InMemoryDocumentRepository
from infrastructure.persistence.repository import DocumentRepository

if TYPE_CHECKING:
    from infrastructure.configuration import PersistenceSettings

logger = get_module_logger()


def create_document_repository(
    settings: "PersistenceSettings", backend: Optional[str] = None
) -> DocumentRepository:
    """Create the repository selected by configuration.

    Args:
        settings: Persistence settings (backend, table prefix, region)
        backend: Optional backend override ('memory' or 'dynamodb')

    Returns:
        DocumentRepository implementation

    Raises:
        ValueError: If the backend is unknown

    Examples:
        >>> repo = create_document_repository(settings.persistence)
        >>> repo = create_document_repository(settings.persistence, backend="memory")
    """
    backend = backend or settings.backend

    if backend == "memory":
        logger.info("creating_in_memory_document_repository")
        return InMemoryDocumentRepository()

    if backend == "dynamodb":
        logger.info(
            "creating_dynamodb_document_repository",
            table_prefix=settings.table_prefix,
            region=settings.aws_region,
        )
        return DynamoDBDocumentRepository(
            table_prefix=settings.table_prefix,
            region_name=settings.aws_region,
            endpoint_url=settings.endpoint_url,
        )

    raise ValueError(
        f"Unknown persistence backend: {backend}. Supported: memory, dynamodb"
    )
