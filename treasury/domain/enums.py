"""Domain enumerations for the treasury service.

Enums represent fixed sets of domain values (directory user lifecycle
and synchronisation state).
"""

from enum import Enum


class DirectoryUserStatus(str, Enum):
    """Lifecycle status of a user in the directory shadow."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [status.value for status in cls]


class SyncStatus(str, Enum):
    """Whether the shadow row reflects the identity provider's latest state."""

    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]
