"""DTOs for the permission catalog (no dependency on ORM)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PermissionResult:
    """Catalog permission read-model."""

    id: str
    code: str
    name: str
    module: str
    action: str
    resource: str | None
    description: str | None


@dataclass(frozen=True)
class PermissionDefinition:
    """Catalog entry to seed (upserted by code)."""

    code: str
    name: str
    module: str
    action: str
    resource: str | None = None
    description: str | None = None
