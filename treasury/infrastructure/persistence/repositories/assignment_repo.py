"""Assignment repository: user-role links with lazy expiry."""

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.application.dtos.assignment import AssignmentResult
from treasury.domain.exceptions import DuplicateAssignmentException
from treasury.infrastructure.persistence.models.assignment import Assignment
from treasury.shared.utils.datetime import ensure_utc


def _assignment_to_result(a: Assignment, role_code: str) -> AssignmentResult:
    return AssignmentResult(
        id=a.id,
        tenant_id=a.tenant_id,
        user_id=a.user_id,
        role_id=a.role_id,
        role_code=role_code,
        assigned_by=a.assigned_by,
        assigned_at=ensure_utc(a.assigned_at) or a.assigned_at,
        expires_at=ensure_utc(a.expires_at),
    )


def active_assignment_clause(now: datetime):
    """Filter for assignments that are still in force at now (lazy expiry)."""
    return or_(Assignment.expires_at.is_(None), Assignment.expires_at > now)


class AssignmentRepository:
    """User-role link table only. Assign, revoke, and list a user's live roles."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_assignment(
        self, tenant_id: str, user_id: str, role_id: str
    ) -> Assignment | None:
        """Return the link regardless of expiry (for duplicate checks and revoke)."""
        result = await self.db.execute(
            select(Assignment).where(
                Assignment.tenant_id == tenant_id,
                Assignment.user_id == user_id,
                Assignment.role_id == role_id,
            )
        )
        return result.scalar_one_or_none()

    async def assign_role_to_user(
        self,
        tenant_id: str,
        user_id: str,
        role_id: str,
        role_code: str,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> AssignmentResult:
        assignment = Assignment(
            tenant_id=tenant_id,
            user_id=user_id,
            role_id=role_id,
            assigned_by=assigned_by,
            expires_at=ensure_utc(expires_at),
        )
        try:
            async with self.db.begin_nested():
                self.db.add(assignment)
                await self.db.flush()
        except IntegrityError:
            raise DuplicateAssignmentException(
                "Role already assigned to user",
                assignment_type="assignment",
                details_extra={"user_id": user_id, "role_id": role_id},
            ) from None
        return _assignment_to_result(assignment, role_code)

    async def remove_role_from_user(
        self, tenant_id: str, user_id: str, role_id: str
    ) -> bool:
        assignment = await self.get_assignment(tenant_id, user_id, role_id)
        if not assignment:
            return False
        await self.db.delete(assignment)
        await self.db.flush()
        return True
