"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from treasury.infrastructure.
"""

from treasury.application.interfaces.repositories import (
    IAssignmentRepository,
    IDirectoryUserRepository,
    IOutboxRepository,
    IPermissionRepository,
    IRolePermissionRepository,
    IRoleRepository,
)
from treasury.application.interfaces.services import (
    IMessageBus,
    IPermissionResolver,
    ISubscription,
)

__all__ = [
    "IAssignmentRepository",
    "IDirectoryUserRepository",
    "IMessageBus",
    "IOutboxRepository",
    "IPermissionRepository",
    "IPermissionResolver",
    "IRolePermissionRepository",
    "IRoleRepository",
    "ISubscription",
]
