"""DTOs for the directory shadow (no dependency on ORM)."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from treasury.shared.utils.datetime import ensure_utc


@dataclass(frozen=True)
class DirectoryUserResult:
    """Directory user read-model."""

    id: str
    tenant_id: str
    external_id: str
    email: str
    status: str
    sync_status: str
    last_sync_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, user: Any) -> "DirectoryUserResult":
        """Build from any object with the directory user attributes (timestamps normalised to UTC)."""
        return cls(
            id=user.id,
            tenant_id=user.tenant_id,
            external_id=user.external_id,
            email=user.email,
            status=user.status,
            sync_status=user.sync_status,
            last_sync_at=ensure_utc(user.last_sync_at),
            created_at=ensure_utc(user.created_at) or user.created_at,
            updated_at=ensure_utc(user.updated_at) or user.updated_at,
        )
