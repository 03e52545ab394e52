"""Application DTOs (no ORM dependency)."""

from treasury.application.dtos.assignment import AssignmentResult
from treasury.application.dtos.directory_user import DirectoryUserResult
from treasury.application.dtos.messaging import BusMessage
from treasury.application.dtos.outbox import OutboxRecordResult, RelayCycleResult
from treasury.application.dtos.permission import PermissionDefinition, PermissionResult
from treasury.application.dtos.role import ProvisionedRole, RoleResult

__all__ = [
    "AssignmentResult",
    "BusMessage",
    "DirectoryUserResult",
    "OutboxRecordResult",
    "PermissionDefinition",
    "PermissionResult",
    "ProvisionedRole",
    "RelayCycleResult",
    "RoleResult",
]
