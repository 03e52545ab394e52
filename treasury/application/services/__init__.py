"""Application services: authorization, role graph, directory sync, outbox."""

from treasury.application.services.authorization_service import AuthorizationService
from treasury.application.services.directory_sync_service import DirectorySyncService
from treasury.application.services.outbox_writer import OutboxWriter, validate_payload
from treasury.application.services.permission_service import PermissionService
from treasury.application.services.role_service import RoleService

__all__ = [
    "AuthorizationService",
    "DirectorySyncService",
    "OutboxWriter",
    "PermissionService",
    "RoleService",
    "validate_payload",
]
