"""Shared enumerations for the treasury service.

Cross-cutting enums used by application and infrastructure (outbox
delivery state). Directory enums live in treasury.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class OutboxStatus(_ValuesMixin, str, Enum):
    """Delivery state of an outbox record.

    PENDING -> PUBLISHED, PENDING -> FAILED -> (retry) -> PUBLISHED, and
    FAILED -> DEAD_LETTERED once attempts are exhausted. PUBLISHED and
    DEAD_LETTERED are terminal.
    """

    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"
    DEAD_LETTERED = "DEAD_LETTERED"


class RbacEventType(_ValuesMixin, str, Enum):
    """Outbound event types emitted by RBAC mutations (topic suffix)."""

    ROLE_PROVISIONED = "rbac.role.provisioned"
    ROLE_ASSIGNED = "rbac.role.assigned"
    ROLE_REVOKED = "rbac.role.revoked"
    ROLE_DELETED = "rbac.role.deleted"
