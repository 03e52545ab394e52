"""Role repository. Read methods return RoleResult (DTO); entity getters return ORM for deletes."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.application.dtos.role import RoleResult
from treasury.domain.exceptions import DuplicateCodeException
from treasury.infrastructure.persistence.models.role import Role
from treasury.infrastructure.persistence.repositories.base import BaseRepository


def _role_to_result(r: Role) -> RoleResult:
    """Map ORM Role to application RoleResult."""
    return RoleResult(
        id=r.id,
        tenant_id=r.tenant_id,
        code=r.code,
        name=r.name,
        description=r.description,
        is_system=r.is_system,
    )


class RoleRepository(BaseRepository[Role]):
    """Tenant-scoped roles. Codes are unique per tenant."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Role)

    async def create_role(
        self,
        tenant_id: str,
        code: str,
        name: str,
        description: str | None = None,
        *,
        is_system: bool = False,
    ) -> RoleResult:
        """Create a role; raise DuplicateCodeException when the tenant already has the code."""
        role = Role(
            tenant_id=tenant_id,
            code=code,
            name=name,
            description=description,
            is_system=is_system,
        )
        try:
            async with self.db.begin_nested():
                created = await self.create(role)
        except IntegrityError:
            raise DuplicateCodeException("role", code) from None
        return _role_to_result(created)

    async def get_by_code_and_tenant(
        self, code: str, tenant_id: str
    ) -> RoleResult | None:
        row = await self.get_entity_by_code_and_tenant(code, tenant_id)
        return _role_to_result(row) if row else None

    async def get_entity_by_code_and_tenant(
        self, code: str, tenant_id: str
    ) -> Role | None:
        result = await self.db.execute(
            select(Role).where(Role.code == code, Role.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_by_tenant(self, tenant_id: str) -> list[RoleResult]:
        result = await self.db.execute(
            select(Role).where(Role.tenant_id == tenant_id).order_by(Role.code)
        )
        return [_role_to_result(r) for r in result.scalars().all()]

