"""Persistence models: ORM entities and mixins."""

from treasury.infrastructure.persistence.models.assignment import Assignment
from treasury.infrastructure.persistence.models.directory_user import DirectoryUser
from treasury.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    MultiTenantModel,
    TenantMixin,
    TimestampMixin,
)
from treasury.infrastructure.persistence.models.outbox_event import OutboxEvent
from treasury.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
)
from treasury.infrastructure.persistence.models.role import Role

__all__ = [
    "Permission",
    "Role",
    "RolePermission",
    "Assignment",
    "DirectoryUser",
    "OutboxEvent",
    "CuidMixin",
    "TenantMixin",
    "CreatedAtMixin",
    "TimestampMixin",
    "MultiTenantModel",
]
