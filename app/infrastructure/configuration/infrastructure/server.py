"""HTTP server settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class ServerSettings(InfrastructureSettings):
    """HTTP API configuration.

    Environment Variables:
        SERVER_ALLOWED_ORIGINS: Comma separated CORS origins for non-production
        SERVER_USER_HEADER: Header carrying the authenticated resident id
    """

    allowed_origins: str = Field(
        default="http://localhost:8000,http://127.0.0.1:8000",
        alias="SERVER_ALLOWED_ORIGINS",
    )
    user_header: str = Field(default="X-User-Id", alias="SERVER_USER_HEADER")

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
