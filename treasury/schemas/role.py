"""Role and assignment API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RoleProvisionRequest(BaseModel):
    """Request body for provisioning a role.

    permissions holds exact codes or wildcard patterns ('treasury.payments.*');
    wildcards are expanded against the catalog at request time.
    """

    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    permissions: list[str] = Field(default_factory=list, max_length=200)


class RoleResponse(BaseModel):
    """Role list/detail response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    code: str
    name: str
    description: str | None
    is_system: bool


class ProvisionedRoleResponse(BaseModel):
    """Response for POST /roles: the role and the codes granted by this call."""

    role: RoleResponse
    granted: list[str]
    already_granted: list[str]


class AssignmentCreate(BaseModel):
    """Request body for assigning a role to a user."""

    user_id: str = Field(..., min_length=1, max_length=255)
    expires_at: datetime | None = None


class AssignmentResponse(BaseModel):
    """Assignment response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    user_id: str
    role_id: str
    role_code: str
    assigned_by: str | None
    assigned_at: datetime
    expires_at: datetime | None
