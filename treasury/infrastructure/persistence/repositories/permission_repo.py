"""Permission catalog repository. Read methods return PermissionResult (DTO)."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.application.dtos.permission import PermissionDefinition, PermissionResult
from treasury.domain.exceptions import DuplicateCodeException
from treasury.infrastructure.persistence.models.permission import Permission
from treasury.infrastructure.persistence.repositories.base import BaseRepository


def _permission_to_result(p: Permission) -> PermissionResult:
    return PermissionResult(
        id=p.id,
        code=p.code,
        name=p.name,
        module=p.module,
        action=p.action,
        resource=p.resource,
        description=p.description,
    )


class PermissionRepository(BaseRepository[Permission]):
    """Global permission catalog. Codes are unique across all tenants."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Permission)

    async def get_by_code(self, code: str) -> PermissionResult | None:
        result = await self.db.execute(select(Permission).where(Permission.code == code))
        row = result.scalar_one_or_none()
        return _permission_to_result(row) if row else None

    async def list_all(self) -> list[PermissionResult]:
        result = await self.db.execute(select(Permission).order_by(Permission.code))
        return [_permission_to_result(p) for p in result.scalars().all()]

    async def list_by_prefix(self, prefix: str) -> list[PermissionResult]:
        """Return every catalog entry whose code starts with prefix.

        LIKE metacharacters in prefix ('_' is common in codes) are escaped.
        """
        result = await self.db.execute(
            select(Permission)
            .where(Permission.code.startswith(prefix, autoescape=True))
            .order_by(Permission.code)
        )
        return [_permission_to_result(p) for p in result.scalars().all()]

    async def create_permission(self, definition: PermissionDefinition) -> PermissionResult:
        """Insert a catalog entry; raise DuplicateCodeException if the code exists."""
        permission = Permission(
            code=definition.code,
            name=definition.name,
            module=definition.module,
            action=definition.action,
            resource=definition.resource,
            description=definition.description,
        )
        try:
            async with self.db.begin_nested():
                created = await self.create(permission)
        except IntegrityError:
            raise DuplicateCodeException("permission", definition.code) from None
        return _permission_to_result(created)

    async def ensure_permission(
        self, definition: PermissionDefinition
    ) -> tuple[PermissionResult, bool]:
        """Return (entry, created). Existing entries are left untouched."""
        existing = await self.get_by_code(definition.code)
        if existing:
            return existing, False
        return await self.create_permission(definition), True
