"""Pydantic request/response schemas for the API and inbound events."""

from treasury.schemas.authorization import (
    AccessResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
)
from treasury.schemas.directory import (
    DirectoryUserResponse,
    DirectoryUserStatusUpdate,
    DirectoryUserSyncRequest,
)
from treasury.schemas.health import HealthResponse, ReadinessErrorResponse, ReadinessResponse
from treasury.schemas.identity_event import IdentityUserEvent
from treasury.schemas.outbox import OutboxStatusResponse
from treasury.schemas.permission import PermissionCreate, PermissionResponse
from treasury.schemas.role import (
    AssignmentCreate,
    AssignmentResponse,
    ProvisionedRoleResponse,
    RoleProvisionRequest,
    RoleResponse,
)

__all__ = [
    "AccessResponse",
    "AssignmentCreate",
    "AssignmentResponse",
    "DirectoryUserResponse",
    "DirectoryUserStatusUpdate",
    "DirectoryUserSyncRequest",
    "HealthResponse",
    "IdentityUserEvent",
    "OutboxStatusResponse",
    "PermissionCheckRequest",
    "PermissionCheckResponse",
    "PermissionCreate",
    "PermissionResponse",
    "ProvisionedRoleResponse",
    "ReadinessErrorResponse",
    "ReadinessResponse",
    "RoleProvisionRequest",
    "RoleResponse",
]
