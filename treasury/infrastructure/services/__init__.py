"""Infrastructure implementations of application service interfaces."""

from treasury.infrastructure.services.permission_resolver import PermissionResolver
from treasury.infrastructure.services.tenant_initialization_service import (
    DEFAULT_ROLES,
    PERMISSION_CATALOG,
    TenantInitializationService,
)

__all__ = [
    "DEFAULT_ROLES",
    "PERMISSION_CATALOG",
    "PermissionResolver",
    "TenantInitializationService",
]
