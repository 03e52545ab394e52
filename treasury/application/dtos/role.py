"""DTOs for role use cases (no dependency on ORM)."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RoleResult:
    """Role read-model (result of get_by_code_and_tenant, create_role, etc.)."""

    id: str
    tenant_id: str
    code: str
    name: str
    description: str | None
    is_system: bool


@dataclass(frozen=True)
class ProvisionedRole:
    """Result of provisioning: the role and the codes materialised for it.

    granted holds only the codes newly linked by this call; a code already
    granted to the role is listed in already_granted instead.
    """

    role: RoleResult
    granted: tuple[str, ...] = field(default_factory=tuple)
    already_granted: tuple[str, ...] = field(default_factory=tuple)
