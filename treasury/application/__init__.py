"""Application layer: interfaces, DTOs, services.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (repositories, message bus, resolver).
"""

from treasury.application.interfaces import (
    IAssignmentRepository,
    IDirectoryUserRepository,
    IMessageBus,
    IOutboxRepository,
    IPermissionRepository,
    IPermissionResolver,
    IRolePermissionRepository,
    IRoleRepository,
    ISubscription,
)
from treasury.application.services import (
    AuthorizationService,
    DirectorySyncService,
    OutboxWriter,
    PermissionService,
    RoleService,
)

__all__ = [
    "AuthorizationService",
    "DirectorySyncService",
    "IAssignmentRepository",
    "IDirectoryUserRepository",
    "IMessageBus",
    "IOutboxRepository",
    "IPermissionRepository",
    "IPermissionResolver",
    "IRolePermissionRepository",
    "IRoleRepository",
    "ISubscription",
    "OutboxWriter",
    "PermissionService",
    "RoleService",
]
