"""Role application service: provisioning with wildcard expansion, assignment, revocation.

Every mutation appends its outbox event through OutboxWriter on the same
session, so the grant and its event commit or roll back together.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from treasury.application.dtos.assignment import AssignmentResult
from treasury.application.dtos.permission import PermissionResult
from treasury.application.dtos.role import ProvisionedRole
from treasury.application.interfaces.repositories import (
    IAssignmentRepository,
    IPermissionRepository,
    IRolePermissionRepository,
    IRoleRepository,
)
from treasury.application.services.outbox_writer import OutboxWriter
from treasury.domain.exceptions import (
    DuplicateAssignmentException,
    DuplicateCodeException,
    ResourceNotFoundException,
    SystemRoleProtectedException,
    ValidationException,
)
from treasury.domain.value_objects import PermissionPattern
from treasury.shared.enums import RbacEventType
from treasury.shared.telemetry.tracing import traced
from treasury.shared.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

ROLE_AGGREGATE = "role"
ASSIGNMENT_AGGREGATE = "assignment"


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


class RoleService:
    """Role graph and assignment mutations for one tenant-scoped session."""

    def __init__(
        self,
        role_repo: IRoleRepository,
        permission_repo: IPermissionRepository,
        role_permission_repo: IRolePermissionRepository,
        assignment_repo: IAssignmentRepository,
        outbox_writer: OutboxWriter,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._role_repo = role_repo
        self._permission_repo = permission_repo
        self._role_permission_repo = role_permission_repo
        self._assignment_repo = assignment_repo
        self._outbox = outbox_writer
        self._clock = clock

    async def expand_patterns(self, patterns: Iterable[str]) -> list[PermissionResult]:
        """Resolve grant patterns against the catalog as it is right now.

        'x.y.*' yields every code starting with 'x.y.'; any other pattern
        must name an existing code exactly. A wildcard matching nothing
        yields nothing.

        Raises:
            ValidationException: malformed pattern.
            ResourceNotFoundException: unknown exact code.
        """
        matched: dict[str, PermissionResult] = {}
        for raw in patterns:
            try:
                pattern = PermissionPattern(raw)
            except ValueError as e:
                raise ValidationException(str(e), field="permissions") from e
            if pattern.is_wildcard:
                entries = await self._permission_repo.list_by_prefix(pattern.prefix)
                if not entries:
                    logger.warning("Wildcard %s matched no catalog permissions", raw)
                for entry in entries:
                    matched.setdefault(entry.code, entry)
            else:
                entry = await self._permission_repo.get_by_code(pattern.value)
                if not entry:
                    raise ResourceNotFoundException("permission", pattern.value)
                matched.setdefault(entry.code, entry)
        return sorted(matched.values(), key=lambda p: p.code)

    @traced("rbac.provision_role")
    async def provision_role(
        self,
        tenant_id: str,
        code: str,
        name: str,
        permissions: Iterable[str],
        *,
        description: str | None = None,
        is_system: bool = False,
        actor_id: str | None = None,
        reuse_existing: bool = False,
    ) -> ProvisionedRole:
        """Create a tenant role and materialise its grants.

        Expansion is a snapshot: permissions added to the catalog later are
        not granted retroactively. With reuse_existing an existing role of
        the same code (and kind) gets the missing grants instead, and a
        re-run with the same patterns is a no-op that appends no event.

        Raises:
            DuplicateCodeException: code taken in tenant and reuse_existing
                is off, or the existing role is of the other kind.
            ResourceNotFoundException: unknown exact permission code.
        """
        patterns = list(permissions)
        expanded = await self.expand_patterns(patterns)

        role = await self._role_repo.get_by_code_and_tenant(code, tenant_id)
        if role is not None and (not reuse_existing or role.is_system != is_system):
            raise DuplicateCodeException("role", code)
        created = role is None
        if role is None:
            role = await self._role_repo.create_role(
                tenant_id=tenant_id,
                code=code,
                name=name,
                description=description,
                is_system=is_system,
            )

        existing = await self._role_permission_repo.get_permission_codes_for_role(
            role.id, tenant_id
        )
        granted: list[str] = []
        already: list[str] = []
        for permission in expanded:
            if permission.code in existing:
                already.append(permission.code)
                continue
            await self._role_permission_repo.assign_permission_to_role(
                role_id=role.id, permission_id=permission.id, tenant_id=tenant_id
            )
            granted.append(permission.code)

        if created or granted:
            await self._outbox.record(
                tenant_id=tenant_id,
                aggregate_type=ROLE_AGGREGATE,
                aggregate_id=role.id,
                event_type=RbacEventType.ROLE_PROVISIONED.value,
                payload={
                    "role_id": role.id,
                    "role_code": role.code,
                    "name": role.name,
                    "is_system": role.is_system,
                    "created": created,
                    "patterns": patterns,
                    "granted": granted,
                    "provisioned_by": actor_id,
                },
            )
        logger.info(
            "Provisioned role %s in tenant %s: %d granted, %d already held",
            code,
            tenant_id,
            len(granted),
            len(already),
        )
        return ProvisionedRole(role=role, granted=tuple(granted), already_granted=tuple(already))

    @traced("rbac.assign_role")
    async def assign_role(
        self,
        tenant_id: str,
        user_id: str,
        role_code: str,
        *,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> AssignmentResult:
        """Grant role_code to user_id in tenant.

        An expired link for the same (tenant, user, role) is replaced; a
        live one raises DuplicateAssignmentException. expires_at is not
        checked against the clock: a link that is already expired is stored
        and simply never resolves.

        Raises:
            ResourceNotFoundException: role not defined in tenant.
            DuplicateAssignmentException: user already holds the role.
        """
        if not user_id:
            raise ValidationException("user_id is required", field="user_id")
        now = self._clock()
        expires_at = ensure_utc(expires_at)

        role = await self._role_repo.get_by_code_and_tenant(role_code, tenant_id)
        if not role:
            raise ResourceNotFoundException("role", role_code)

        existing = await self._assignment_repo.get_assignment(tenant_id, user_id, role.id)
        if existing is not None:
            existing_expiry = ensure_utc(existing.expires_at)
            if existing_expiry is None or existing_expiry > now:
                raise DuplicateAssignmentException(
                    "Role already assigned to user",
                    assignment_type="assignment",
                    details_extra={"user_id": user_id, "role_code": role_code},
                )
            await self._assignment_repo.remove_role_from_user(tenant_id, user_id, role.id)

        assignment = await self._assignment_repo.assign_role_to_user(
            tenant_id=tenant_id,
            user_id=user_id,
            role_id=role.id,
            role_code=role.code,
            assigned_by=assigned_by,
            expires_at=expires_at,
        )
        await self._outbox.record(
            tenant_id=tenant_id,
            aggregate_type=ASSIGNMENT_AGGREGATE,
            aggregate_id=assignment.id,
            event_type=RbacEventType.ROLE_ASSIGNED.value,
            payload={
                "assignment_id": assignment.id,
                "user_id": user_id,
                "role_id": role.id,
                "role_code": role.code,
                "assigned_by": assigned_by,
                "expires_at": _iso(expires_at),
            },
        )
        return assignment

    @traced("rbac.revoke_role")
    async def revoke_role(
        self,
        tenant_id: str,
        user_id: str,
        role_code: str,
        *,
        revoked_by: str | None = None,
    ) -> None:
        """Remove role_code from user_id in tenant.

        Raises:
            ResourceNotFoundException: role not defined, or not assigned to the user.
        """
        role = await self._role_repo.get_by_code_and_tenant(role_code, tenant_id)
        if not role:
            raise ResourceNotFoundException("role", role_code)
        existing = await self._assignment_repo.get_assignment(tenant_id, user_id, role.id)
        if existing is None:
            raise ResourceNotFoundException("assignment", f"{user_id}:{role_code}")
        assignment_id = existing.id
        await self._assignment_repo.remove_role_from_user(tenant_id, user_id, role.id)
        await self._outbox.record(
            tenant_id=tenant_id,
            aggregate_type=ASSIGNMENT_AGGREGATE,
            aggregate_id=assignment_id,
            event_type=RbacEventType.ROLE_REVOKED.value,
            payload={
                "assignment_id": assignment_id,
                "user_id": user_id,
                "role_id": role.id,
                "role_code": role.code,
                "revoked_by": revoked_by,
            },
        )

    async def delete_role(
        self, tenant_id: str, role_code: str, *, deleted_by: str | None = None
    ) -> None:
        """Delete a custom role (its grants and assignments cascade).

        Raises:
            ResourceNotFoundException: role not defined in tenant.
            SystemRoleProtectedException: role is a seeded system role.
        """
        role = await self._role_repo.get_entity_by_code_and_tenant(role_code, tenant_id)
        if role is None:
            raise ResourceNotFoundException("role", role_code)
        if role.is_system:
            raise SystemRoleProtectedException(role_code)
        role_id = role.id
        await self._role_repo.delete(role)
        await self._outbox.record(
            tenant_id=tenant_id,
            aggregate_type=ROLE_AGGREGATE,
            aggregate_id=role_id,
            event_type=RbacEventType.ROLE_DELETED.value,
            payload={"role_id": role_id, "role_code": role_code, "deleted_by": deleted_by},
        )
