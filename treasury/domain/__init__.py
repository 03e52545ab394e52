"""Domain layer: value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from treasury.domain.enums import DirectoryUserStatus, SyncStatus
from treasury.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    AuthorizationIndeterminateException,
    BrokerUnavailableException,
    ConflictException,
    DuplicateAssignmentException,
    DuplicateCodeException,
    OutboxTransactionRequiredException,
    PoisonMessageException,
    ResourceNotFoundException,
    SystemRoleProtectedException,
    TransientPublishFailure,
    TreasuryException,
    ValidationException,
)
from treasury.domain.value_objects import (
    PermissionCode,
    PermissionPattern,
    Principal,
)

__all__ = [
    # Enums
    "DirectoryUserStatus",
    "SyncStatus",
    # Exceptions
    "AuthenticationException",
    "AuthorizationException",
    "AuthorizationIndeterminateException",
    "BrokerUnavailableException",
    "ConflictException",
    "DuplicateAssignmentException",
    "DuplicateCodeException",
    "OutboxTransactionRequiredException",
    "PoisonMessageException",
    "ResourceNotFoundException",
    "SystemRoleProtectedException",
    "TransientPublishFailure",
    "TreasuryException",
    "ValidationException",
    # Value objects
    "PermissionCode",
    "PermissionPattern",
    "Principal",
]
