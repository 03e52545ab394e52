"""Permission catalog API schemas."""

from pydantic import BaseModel, ConfigDict, Field


class PermissionCreate(BaseModel):
    """Request body for registering a catalog permission."""

    code: str = Field(..., min_length=1, max_length=150)
    name: str = Field(..., min_length=1, max_length=255)
    module: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=100)
    resource: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class PermissionResponse(BaseModel):
    """Permission list/detail response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    name: str
    module: str
    action: str
    resource: str | None
    description: str | None
