"""DTOs for user-role assignments (no dependency on ORM)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AssignmentResult:
    """Assignment read-model. expires_at None means the grant never lapses."""

    id: str
    tenant_id: str
    user_id: str
    role_id: str
    role_code: str
    assigned_by: str | None
    assigned_at: datetime
    expires_at: datetime | None
