"""Domain value objects for the treasury service.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

import re
from dataclasses import dataclass, field

# Dotted lowercase code with at least two segments (e.g. treasury.payments.create).
_CODE_RE = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)+$")
# Wildcard prefixes may be a single segment (e.g. treasury.*).
_PREFIX_RE = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*$")
WILDCARD_SUFFIX = ".*"


@dataclass(frozen=True)
class PermissionCode:
    """Value object for a catalog permission code (dotted module.action)."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Permission code must be a non-empty string")
        if len(self.value) > 150:
            raise ValueError("Permission code must not exceed 150 characters")
        if not _CODE_RE.match(self.value):
            raise ValueError(
                "Permission code must be dotted lowercase segments "
                "(e.g., 'treasury.payments.create')"
            )


@dataclass(frozen=True)
class PermissionPattern:
    """A grant request at role provisioning time.

    Either an exact permission code or a prefix wildcard ending in '.*'.
    'treasury.payments.*' matches every code starting with
    'treasury.payments.'; it never matches 'treasury.paymentsx.view' or
    'treasury.payments' itself.
    """

    value: str

    def __post_init__(self) -> None:
        if self.is_wildcard:
            prefix = self.value[: -len(WILDCARD_SUFFIX)]
            if not _PREFIX_RE.match(prefix):
                raise ValueError(f"Invalid wildcard pattern: {self.value!r}")
        else:
            PermissionCode(self.value)

    @property
    def is_wildcard(self) -> bool:
        return self.value.endswith(WILDCARD_SUFFIX)

    @property
    def prefix(self) -> str:
        """Prefix including the trailing dot (wildcards only)."""
        return self.value[:-1] if self.is_wildcard else self.value

    def matches(self, code: str) -> bool:
        if self.is_wildcard:
            return code.startswith(self.prefix)
        return code == self.value


@dataclass(frozen=True)
class Principal:
    """Authenticated caller: tenant, user and granted scopes.

    Built from an identity assertion verified upstream. Scopes are opaque
    strings; the only one interpreted here is the superuser scope.
    """

    tenant_id: str
    user_id: str
    scopes: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.tenant_id:
            raise ValueError("Principal tenant_id must be a non-empty string")
        if not self.user_id:
            raise ValueError("Principal user_id must be a non-empty string")

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes
