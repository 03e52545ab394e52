"""Resolves user permissions and roles from the DB (implements IPermissionResolver)."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.domain.exceptions import AuthorizationIndeterminateException
from treasury.infrastructure.persistence.models.assignment import Assignment
from treasury.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from treasury.infrastructure.persistence.models.role import Role
from treasury.infrastructure.persistence.repositories.assignment_repo import (
    active_assignment_clause,
)
from treasury.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _store_unavailable_as_indeterminate() -> AsyncIterator[None]:
    """Translate connectivity failures into AuthorizationIndeterminateException.

    Other database errors (bad SQL, constraint bugs) propagate unchanged.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.warning("Authorization store unavailable: %s", e)
        raise AuthorizationIndeterminateException(type(e).__name__) from e
    except DBAPIError as e:
        if not e.connection_invalidated:
            raise
        logger.warning("Authorization store connection invalidated: %s", e)
        raise AuthorizationIndeterminateException("connection_invalidated") from e
    except (OSError, TimeoutError) as e:
        logger.warning("Authorization store unreachable: %s", e)
        raise AuthorizationIndeterminateException(type(e).__name__) from e


class PermissionResolver:
    """Resolves grants by joining assignments -> roles -> role_permissions -> permissions.

    Expired assignments are filtered at read time against clock(); nothing
    is cached, so an assignment stops resolving the instant it expires.
    """

    def __init__(
        self, db: AsyncSession, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self.db = db
        self.clock = clock

    async def get_user_permissions(self, user_id: str, tenant_id: str) -> set[str]:
        """Return set of permission codes for user in tenant (non-expired assignments)."""
        query = (
            select(Permission.code)
            .select_from(Assignment)
            .join(RolePermission, RolePermission.role_id == Assignment.role_id)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(
                Assignment.user_id == user_id,
                Assignment.tenant_id == tenant_id,
                RolePermission.tenant_id == tenant_id,
                active_assignment_clause(self.clock()),
            )
        )
        async with _store_unavailable_as_indeterminate():
            result = await self.db.execute(query)
            return {row[0] for row in result.fetchall()}

    async def get_user_roles(self, user_id: str, tenant_id: str) -> set[str]:
        """Return set of role codes for user in tenant (non-expired assignments)."""
        query = (
            select(Role.code)
            .join(Assignment, Assignment.role_id == Role.id)
            .where(
                Assignment.user_id == user_id,
                Assignment.tenant_id == tenant_id,
                Role.tenant_id == tenant_id,
                active_assignment_clause(self.clock()),
            )
        )
        async with _store_unavailable_as_indeterminate():
            result = await self.db.execute(query)
            return {row[0] for row in result.fetchall()}

    async def has_permission(self, user_id: str, tenant_id: str, code: str) -> bool:
        """Exact-match lookup for one permission code."""
        query = (
            select(Assignment.id)
            .join(RolePermission, RolePermission.role_id == Assignment.role_id)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(
                Assignment.user_id == user_id,
                Assignment.tenant_id == tenant_id,
                Permission.code == code,
                active_assignment_clause(self.clock()),
            )
            .limit(1)
        )
        async with _store_unavailable_as_indeterminate():
            result = await self.db.execute(query)
            return result.first() is not None

    async def has_role(self, user_id: str, tenant_id: str, role_code: str) -> bool:
        """Exact-match lookup for one role code."""
        query = (
            select(Assignment.id)
            .join(Role, Role.id == Assignment.role_id)
            .where(
                Assignment.user_id == user_id,
                Assignment.tenant_id == tenant_id,
                Role.code == role_code,
                Role.tenant_id == tenant_id,
                active_assignment_clause(self.clock()),
            )
            .limit(1)
        )
        async with _store_unavailable_as_indeterminate():
            result = await self.db.execute(query)
            return result.first() is not None
