"""Back-office configuration."""

from pydantic import BaseModel, Field


class BackOfficeConfig(BaseModel):
    """
    Appointment back-office configuration.

    Secrets (database URL) are not configured here; they come from Vault.
    """

    # Request identity, set by the upstream auth layer
    role_header: str = Field(
        default="X-Role",
        description="Header carrying the caller's role name or id",
    )
    user_header: str = Field(
        default="X-User-Id",
        description="Header carrying the caller's user id",
    )

    # Listing
    appointment_list_limit: int = Field(
        default=200,
        description="Max appointments returned per list request",
        ge=1,
        le=1000,
    )
    completion_list_limit: int = Field(
        default=50,
        description="Max completion records per page",
        ge=1,
        le=500,
    )

    # Database pool
    db_min_connections: int = Field(default=2, ge=1, le=20)
    db_max_connections: int = Field(default=20, ge=1, le=100)
