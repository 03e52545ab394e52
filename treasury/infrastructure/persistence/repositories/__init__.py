"""Persistence repositories. Re-exports for dependency injection."""

from treasury.infrastructure.persistence.repositories.assignment_repo import (
    AssignmentRepository,
)
from treasury.infrastructure.persistence.repositories.base import BaseRepository
from treasury.infrastructure.persistence.repositories.directory_user_repo import (
    DirectoryUserRepository,
)
from treasury.infrastructure.persistence.repositories.outbox_repo import OutboxRepository
from treasury.infrastructure.persistence.repositories.permission_repo import (
    PermissionRepository,
)
from treasury.infrastructure.persistence.repositories.role_permission_repo import (
    RolePermissionRepository,
)
from treasury.infrastructure.persistence.repositories.role_repo import RoleRepository

__all__ = [
    "AssignmentRepository",
    "BaseRepository",
    "DirectoryUserRepository",
    "OutboxRepository",
    "PermissionRepository",
    "RolePermissionRepository",
    "RoleRepository",
]
