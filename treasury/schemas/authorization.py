"""Authorization query API schemas."""

from pydantic import BaseModel, Field


class AccessResponse(BaseModel):
    """Permission and role codes the caller currently holds in the tenant."""

    tenant_id: str
    user_id: str
    roles: list[str]
    permissions: list[str]


class PermissionCheckRequest(BaseModel):
    """Request body for POST /authorization/check."""

    permission: str = Field(..., min_length=1, max_length=150)


class PermissionCheckResponse(BaseModel):
    permission: str
    allowed: bool
