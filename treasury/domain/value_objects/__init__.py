"""Domain value objects and shared value types."""

from treasury.domain.value_objects.core import (
    WILDCARD_SUFFIX,
    PermissionCode,
    PermissionPattern,
    Principal,
)

__all__ = [
    "PermissionCode",
    "PermissionPattern",
    "Principal",
    "WILDCARD_SUFFIX",
]
