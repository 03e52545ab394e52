"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; entity-returning methods are typed Any
so no infrastructure import leaks in.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from treasury.application.dtos.assignment import AssignmentResult
    from treasury.application.dtos.outbox import OutboxRecordResult
    from treasury.application.dtos.permission import (
        PermissionDefinition,
        PermissionResult,
    )
    from treasury.application.dtos.role import RoleResult
    from treasury.domain.enums import DirectoryUserStatus


class IPermissionRepository(Protocol):
    """Protocol for the global permission catalog."""

    async def get_by_code(self, code: str) -> PermissionResult | None: ...

    async def list_all(self) -> list[PermissionResult]: ...

    async def list_by_prefix(self, prefix: str) -> list[PermissionResult]:
        """Return catalog entries whose code starts with prefix."""

    async def ensure_permission(
        self, definition: PermissionDefinition
    ) -> tuple[PermissionResult, bool]: ...


class IRoleRepository(Protocol):
    """Protocol for tenant-scoped roles."""

    async def create_role(
        self,
        tenant_id: str,
        code: str,
        name: str,
        description: str | None = None,
        *,
        is_system: bool = False,
    ) -> RoleResult: ...

    async def get_by_code_and_tenant(self, code: str, tenant_id: str) -> RoleResult | None: ...

    async def get_entity_by_code_and_tenant(self, code: str, tenant_id: str) -> Any: ...

    async def delete(self, obj: Any) -> None: ...


class IRolePermissionRepository(Protocol):
    """Protocol for materialised grants."""

    async def get_permission_codes_for_role(self, role_id: str, tenant_id: str) -> set[str]: ...

    async def assign_permission_to_role(
        self, role_id: str, permission_id: str, tenant_id: str
    ) -> Any: ...


class IAssignmentRepository(Protocol):
    """Protocol for user-role assignments (lazy expiry on read)."""

    async def get_assignment(self, tenant_id: str, user_id: str, role_id: str) -> Any: ...

    async def assign_role_to_user(
        self,
        tenant_id: str,
        user_id: str,
        role_id: str,
        role_code: str,
        assigned_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> AssignmentResult: ...

    async def remove_role_from_user(self, tenant_id: str, user_id: str, role_id: str) -> bool: ...


class IDirectoryUserRepository(Protocol):
    """Protocol for the directory shadow."""

    async def get_entity_by_external_id(self, tenant_id: str, external_id: str) -> Any: ...

    async def get_entity_by_id_and_tenant(self, user_id: str, tenant_id: str) -> Any: ...

    async def insert_if_absent(
        self, tenant_id: str, external_id: str, email: str, synced_at: datetime
    ) -> Any:
        """Insert a row; None when a row for (tenant, external_id) already exists."""

    async def mark_synced(self, user: Any, email: str, synced_at: datetime) -> Any: ...

    async def set_status(self, user: Any, status: DirectoryUserStatus) -> Any: ...


class IOutboxRepository(Protocol):
    """Protocol for the outbox store."""

    async def append(
        self,
        tenant_id: str,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: Any,
    ) -> OutboxRecordResult:
        """Insert a PENDING record inside the caller's open transaction."""

    async def claim_batch(self, limit: int) -> list[OutboxRecordResult]: ...

    async def mark_published(self, record_id: str, when: datetime) -> bool: ...

    async def mark_failed(self, record_id: str, message: str, when: datetime) -> int | None: ...

    async def mark_dead_lettered(self, record_id: str, message: str, when: datetime) -> bool: ...
