"""Document persistence settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class PersistenceSettings(InfrastructureSettings):
    """Document repository configuration.

    Environment Variables:
        PERSISTENCE_BACKEND: 'memory' or 'dynamodb' (default: memory)
        PERSISTENCE_TABLE_PREFIX: Prefix prepended to every collection table name
        PERSISTENCE_AWS_REGION: AWS region for DynamoDB (default: ca-central-1)
        PERSISTENCE_ENDPOINT_URL: Optional endpoint override (local DynamoDB)

    Tables:
        Each collection maps to one table named ``{table_prefix}{collection}``
        with a single string hash key ``id``.
    """

    backend: str = Field(
        default="memory",
        alias="PERSISTENCE_BACKEND",
        description="Repository backend: 'memory' or 'dynamodb'",
    )
    table_prefix: str = Field(
        default="hoa_",
        alias="PERSISTENCE_TABLE_PREFIX",
        description="Prefix for DynamoDB table names",
    )
    aws_region: str = Field(
        default="ca-central-1",
        alias="PERSISTENCE_AWS_REGION",
        description="AWS region for DynamoDB tables",
    )
    endpoint_url: str | None = Field(
        default=None,
        alias="PERSISTENCE_ENDPOINT_URL",
        description="Endpoint override for DynamoDB (e.g. http://localhost:8000)",
    )
