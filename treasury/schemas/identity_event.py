"""Inbound identity-provider events (auth.user.created / auth.user.updated)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class IdentityUserEvent(BaseModel):
    """User lifecycle event published by the identity provider.

    email is validated as in the directory sync API, so both paths feed
    sync_user the same normalized address.

    created_at (user.created) and updated_at (user.updated) both map to
    occurred_at, which orders conflicting updates for the same user.
    """

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., min_length=1, max_length=255)
    tenant_id: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    occurred_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    metadata: dict | None = None

    @field_validator("occurred_at", "created_at", "updated_at", mode="before")
    @classmethod
    def empty_as_none(cls, value: object) -> object:
        return None if value == "" else value

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("user_id", "tenant_id")
    @classmethod
    def strip_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @property
    def event_time(self) -> datetime | None:
        return self.occurred_at or self.updated_at or self.created_at
