"""Authorization service: default-deny, exact-match permission and role checks."""

from __future__ import annotations

import logging

from treasury.application.interfaces.services import IPermissionResolver
from treasury.domain.exceptions import AuthorizationException
from treasury.domain.value_objects import Principal

logger = logging.getLogger(__name__)

DEFAULT_SUPERUSER_SCOPE = "superuser"


class AuthorizationService:
    """Centralized permission checking.

    A caller holding the superuser scope passes every check without a store
    lookup. Otherwise a check passes only when a non-expired assignment
    links the user to a role granting exactly the requested code.
    AuthorizationIndeterminateException from the resolver propagates; the
    boundary turns it into a denial.
    """

    def __init__(
        self,
        permission_resolver: IPermissionResolver,
        superuser_scope: str = DEFAULT_SUPERUSER_SCOPE,
    ) -> None:
        self.permission_resolver = permission_resolver
        self.superuser_scope = superuser_scope

    def _is_superuser(self, scopes: frozenset[str] | set[str] | tuple[str, ...]) -> bool:
        return self.superuser_scope in scopes

    async def check_permission(
        self,
        tenant_id: str,
        user_id: str,
        code: str,
        *,
        scopes: frozenset[str] | set[str] | tuple[str, ...] = (),
    ) -> bool:
        """Return True if user holds permission code in tenant."""
        if self._is_superuser(scopes):
            return True
        allowed = await self.permission_resolver.has_permission(user_id, tenant_id, code)
        if not allowed:
            logger.debug("Permission %s denied for %s in %s", code, user_id, tenant_id)
        return allowed

    async def check_role(
        self,
        tenant_id: str,
        user_id: str,
        role_code: str,
        *,
        scopes: frozenset[str] | set[str] | tuple[str, ...] = (),
    ) -> bool:
        """Return True if user holds role_code in tenant."""
        if self._is_superuser(scopes):
            return True
        return await self.permission_resolver.has_role(user_id, tenant_id, role_code)

    async def require_permission(self, principal: Principal, code: str) -> None:
        """Raise AuthorizationException if the principal lacks permission code."""
        if not await self.check_permission(
            principal.tenant_id, principal.user_id, code, scopes=principal.scopes
        ):
            raise AuthorizationException(permission=code)

    async def require_role(self, principal: Principal, role_code: str) -> None:
        """Raise AuthorizationException if the principal lacks role_code."""
        if not await self.check_role(
            principal.tenant_id, principal.user_id, role_code, scopes=principal.scopes
        ):
            raise AuthorizationException(role=role_code)

    async def get_user_permissions(self, tenant_id: str, user_id: str) -> set[str]:
        """Return every permission code the user currently holds in tenant."""
        return await self.permission_resolver.get_user_permissions(user_id, tenant_id)

    async def get_user_roles(self, tenant_id: str, user_id: str) -> set[str]:
        """Return every role code the user currently holds in tenant."""
        return await self.permission_resolver.get_user_roles(user_id, tenant_id)
