"""Unit tests for the seeded permission catalog and default roles."""

from treasury.domain.value_objects import PermissionCode, PermissionPattern
from treasury.infrastructure.services.tenant_initialization_service import (
    ADMIN_ROLE_CODE,
    DEFAULT_ROLES,
    PERMISSION_CATALOG,
)

CATALOG_CODES = {p.code for p in PERMISSION_CATALOG}


def _expand(patterns: list[str]) -> set[str]:
    expanded: set[str] = set()
    for raw in patterns:
        pattern = PermissionPattern(raw)
        expanded.update(code for code in CATALOG_CODES if pattern.matches(code))
    return expanded


def test_catalog_codes_are_valid_and_unique() -> None:
    assert len(CATALOG_CODES) == len(PERMISSION_CATALOG) == 24
    for definition in PERMISSION_CATALOG:
        PermissionCode(definition.code)
        assert definition.code == f"treasury.{definition.module}.{definition.action}"


def test_default_roles() -> None:
    assert set(DEFAULT_ROLES) == {"finance_admin", "accountant", "cashier", "approver", "viewer"}
    assert ADMIN_ROLE_CODE in DEFAULT_ROLES


def test_every_exact_default_grant_exists_in_catalog() -> None:
    for role_data in DEFAULT_ROLES.values():
        for raw in role_data["permissions"]:
            if not PermissionPattern(raw).is_wildcard:
                assert raw in CATALOG_CODES, raw


def test_finance_admin_expands_to_full_catalog() -> None:
    """Module wildcards plus users.manage cover every seeded code."""
    assert _expand(DEFAULT_ROLES[ADMIN_ROLE_CODE]["permissions"]) == CATALOG_CODES


def test_viewer_is_read_only() -> None:
    codes = _expand(DEFAULT_ROLES["viewer"]["permissions"])
    assert codes and all(code.endswith(".view") for code in codes)
