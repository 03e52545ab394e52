"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for DB sessions, the caller's Principal and
application services. All services are built from infrastructure
implementations here; routes depend only on these dependencies, not on
infra directly.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.application.services.authorization_service import AuthorizationService
from treasury.application.services.directory_sync_service import DirectorySyncService
from treasury.application.services.outbox_writer import OutboxWriter
from treasury.application.services.permission_service import PermissionService
from treasury.application.services.role_service import RoleService
from treasury.core.config import get_settings
from treasury.domain.exceptions import AuthenticationException, AuthorizationException
from treasury.domain.value_objects import Principal
from treasury.infrastructure.persistence.database import get_db, get_db_transactional
from treasury.infrastructure.persistence.repositories import (
    AssignmentRepository,
    DirectoryUserRepository,
    OutboxRepository,
    PermissionRepository,
    RolePermissionRepository,
    RoleRepository,
)
from treasury.infrastructure.security.jwt import principal_from_token
from treasury.infrastructure.services import PermissionResolver

_http_bearer = HTTPBearer(auto_error=False)

__all__ = [
    "get_authorization_service",
    "get_db",
    "get_db_transactional",
    "get_directory_sync_service",
    "get_outbox_repo",
    "get_permission_repo",
    "get_permission_service",
    "get_principal",
    "get_role_repo",
    "get_role_service",
    "get_tenant_id",
    "require_permission",
    "require_role",
]


async def get_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> Principal:
    """Return the caller's Principal from the bearer token; raise 401 if missing or invalid."""
    if not credentials:
        raise AuthenticationException("Not authenticated")
    try:
        return principal_from_token(credentials.credentials)
    except ValueError as e:
        raise AuthenticationException(str(e)) from e


async def get_tenant_id(
    request: Request,
    principal: Annotated[Principal, Depends(get_principal)],
) -> str:
    """Tenant of the request: the token's tenant, which a tenant header must not contradict."""
    header_tenant = request.headers.get(get_settings().tenant_header_name)
    if header_tenant and header_tenant != principal.tenant_id:
        raise AuthorizationException(message="Tenant mismatch")
    return principal.tenant_id


async def get_permission_resolver(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PermissionResolver:
    """Permission resolver on a read session (no caching)."""
    return PermissionResolver(db)


async def get_authorization_service(
    resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
) -> AuthorizationService:
    """Authorization service (composition root)."""
    return AuthorizationService(resolver, superuser_scope=get_settings().superuser_scope)


def require_permission(code: str):
    """Dependency factory: require an authenticated caller holding permission code."""

    async def _require(
        principal: Annotated[Principal, Depends(get_principal)],
        _tenant_id: Annotated[str, Depends(get_tenant_id)],
        auth_svc: Annotated[AuthorizationService, Depends(get_authorization_service)],
    ) -> Principal:
        await auth_svc.require_permission(principal, code)
        return principal

    return _require


def require_role(role_code: str):
    """Dependency factory: require an authenticated caller holding role_code."""

    async def _require(
        principal: Annotated[Principal, Depends(get_principal)],
        _tenant_id: Annotated[str, Depends(get_tenant_id)],
        auth_svc: Annotated[AuthorizationService, Depends(get_authorization_service)],
    ) -> Principal:
        await auth_svc.require_role(principal, role_code)
        return principal

    return _require


async def get_role_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RoleRepository:
    """Role repository for read operations."""
    return RoleRepository(db)


async def get_permission_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PermissionRepository:
    """Permission catalog repository for read operations."""
    return PermissionRepository(db)


async def get_outbox_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OutboxRepository:
    """Outbox repository for diagnostics (read only)."""
    return OutboxRepository(db)


def get_role_service(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> RoleService:
    """Role service; role writes and their outbox records share one transaction."""
    return RoleService(
        role_repo=RoleRepository(db),
        permission_repo=PermissionRepository(db),
        role_permission_repo=RolePermissionRepository(db),
        assignment_repo=AssignmentRepository(db),
        outbox_writer=OutboxWriter(OutboxRepository(db)),
    )


def get_permission_service(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> PermissionService:
    """Permission catalog service (composition root)."""
    return PermissionService(PermissionRepository(db))


def get_directory_sync_service(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> DirectorySyncService:
    """Directory sync service (composition root)."""
    return DirectorySyncService(DirectoryUserRepository(db))
