"""Directory shadow API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from treasury.domain.enums import DirectoryUserStatus


class DirectoryUserSyncRequest(BaseModel):
    """Request body for syncing one identity-provider user."""

    external_id: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    occurred_at: datetime | None = None


class DirectoryUserStatusUpdate(BaseModel):
    status: DirectoryUserStatus


class DirectoryUserResponse(BaseModel):
    """Directory user response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    external_id: str
    email: str
    status: str
    sync_status: str
    last_sync_at: datetime | None
    created_at: datetime
    updated_at: datetime
