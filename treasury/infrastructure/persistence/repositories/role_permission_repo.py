"""RolePermission repository: materialised role-permission grants."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.domain.exceptions import DuplicateAssignmentException
from treasury.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)


class RolePermissionRepository:
    """Role-permission link table only. Grant and query permissions for a role."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_permission_codes_for_role(
        self, role_id: str, tenant_id: str
    ) -> set[str]:
        result = await self.db.execute(
            select(Permission.code)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(
                RolePermission.role_id == role_id,
                RolePermission.tenant_id == tenant_id,
            )
        )
        return set(result.scalars().all())

    async def assign_permission_to_role(
        self, role_id: str, permission_id: str, tenant_id: str
    ) -> RolePermission:
        rp = RolePermission(
            tenant_id=tenant_id,
            role_id=role_id,
            permission_id=permission_id,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(rp)
                await self.db.flush()
        except IntegrityError:
            raise DuplicateAssignmentException(
                "Permission already assigned to role",
                assignment_type="role_permission",
                details_extra={"role_id": role_id, "permission_id": permission_id},
            ) from None
        return rp

