"""Domain exceptions for the treasury service.

Defines domain-level exceptions that represent business rule violations
and the failure modes of the outbox and authorization subsystems. The
presentation layer maps them to HTTP responses in exception handlers;
background workers (relay, consumer) handle them locally.
"""

from typing import Any


class TreasuryException(Exception):
    """Base exception for all treasury errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Structured API error body."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(TreasuryException):
    """Raised when input validation fails (e.g. invalid format or payload)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(TreasuryException):
    """Raised when no usable identity assertion accompanies the request."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(TreasuryException):
    """Raised when the caller lacks the required permission or role."""

    def __init__(
        self,
        permission: str | None = None,
        role: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with the permission code or role code that was required.

        Args:
            permission: Permission code checked (e.g. 'treasury.payments.create').
            role: Role code checked (e.g. 'finance_admin').
            message: Human-readable message; default used when neither is given.
        """
        details: dict[str, Any] = {}
        if permission:
            message = f"Permission denied: {permission}"
            details["permission"] = permission
        elif role:
            message = f"Role required: {role}"
            details["role"] = role
        super().__init__(message, "PERMISSION_DENIED", details)


class AuthorizationIndeterminateException(TreasuryException):
    """Raised when a check cannot be answered because the store is unreachable.

    Callers must treat this as a denial (fail closed).
    """

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Authorization could not be determined",
            "AUTHORIZATION_INDETERMINATE",
            {"reason": reason},
        )


class ResourceNotFoundException(TreasuryException):
    """Raised when a referenced entity does not exist."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'role', 'directory_user').
            resource_id: The id or code that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictException(TreasuryException):
    """Raised when a write collides with existing state."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class DuplicateAssignmentException(ConflictException):
    """Raised when assigning a role/permission that is already assigned (unique constraint)."""

    def __init__(
        self,
        message: str,
        assignment_type: str,
        details_extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with message and assignment context.

        Args:
            message: Human-readable description (e.g. 'Role already assigned to user').
            assignment_type: 'role_permission' or 'assignment'.
            details_extra: Optional extra keys (e.g. role_id, user_id).
        """
        details = dict(details_extra or {})
        details["assignment_type"] = assignment_type
        super().__init__(message, "DUPLICATE_ASSIGNMENT", details)


class DuplicateCodeException(ConflictException):
    """Raised when a tenant-scoped (or catalog) code is already taken."""

    def __init__(self, entity_type: str, code: str) -> None:
        super().__init__(
            f"{entity_type} with code '{code}' already exists",
            "DUPLICATE_CODE",
            {"entity_type": entity_type, "code": code},
        )


class SystemRoleProtectedException(ConflictException):
    """Raised when deleting a system role."""

    def __init__(self, role_code: str) -> None:
        super().__init__(
            f"System role cannot be deleted: {role_code}",
            "SYSTEM_ROLE_PROTECTED",
            {"role_code": role_code},
        )


class OutboxTransactionRequiredException(TreasuryException):
    """Raised when an outbox append is attempted outside an open transaction."""

    def __init__(self, event_type: str) -> None:
        super().__init__(
            f"Outbox append for {event_type} requires an open transaction",
            "OUTBOX_TRANSACTION_REQUIRED",
            {"event_type": event_type},
        )


class TransientPublishFailure(TreasuryException):
    """Raised by the message bus when the broker is unavailable.

    Handled by the outbox relay (record marked FAILED and retried); never
    surfaced to the request that produced the record.
    """

    def __init__(self, topic: str, reason: str) -> None:
        super().__init__(
            f"Publish to {topic} failed: {reason}",
            "TRANSIENT_PUBLISH_FAILURE",
            {"topic": topic, "reason": reason},
        )


class PoisonMessageException(TreasuryException):
    """Raised when an inbound event cannot be parsed. The message is nak'ed."""

    def __init__(self, topic: str, message_id: str, reason: str) -> None:
        super().__init__(
            f"Malformed message {message_id} on {topic}",
            "POISON_MESSAGE",
            {"topic": topic, "message_id": message_id, "reason": reason},
        )


class BrokerUnavailableException(TreasuryException):
    """Raised by the message bus when subscribing, fetching or acking fails.

    The inbound consumer backs off and retries; it never crashes the process.
    """

    def __init__(self, topic: str, reason: str) -> None:
        super().__init__(
            f"Message bus unavailable for {topic}: {reason}",
            "BROKER_UNAVAILABLE",
            {"topic": topic, "reason": reason},
        )
