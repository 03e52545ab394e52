"""Unit tests for permission codes, grant patterns and the principal."""

import pytest

from treasury.domain.value_objects import PermissionCode, PermissionPattern, Principal


@pytest.mark.parametrize(
    "code",
    ["treasury.payments.create", "treasury.config.view", "ledger.post", "a_b.c_d.e2"],
)
def test_permission_code_accepts_dotted_lowercase(code: str) -> None:
    assert PermissionCode(code).value == code


@pytest.mark.parametrize(
    "code",
    ["", "treasury", "Treasury.payments", "treasury..view", "treasury.payments.*", "x." * 80 + "y"],
)
def test_permission_code_rejects_malformed(code: str) -> None:
    with pytest.raises(ValueError):
        PermissionCode(code)


def test_wildcard_pattern_matches_by_prefix_with_dot() -> None:
    """'treasury.payments.*' matches codes under the segment, not look-alikes."""
    pattern = PermissionPattern("treasury.payments.*")
    assert pattern.is_wildcard
    assert pattern.prefix == "treasury.payments."
    assert pattern.matches("treasury.payments.create")
    assert pattern.matches("treasury.payments.refund.partial")
    assert not pattern.matches("treasury.paymentsx.view")
    assert not pattern.matches("treasury.payments")


def test_single_segment_wildcard_is_allowed() -> None:
    pattern = PermissionPattern("treasury.*")
    assert pattern.prefix == "treasury."
    assert pattern.matches("treasury.ledger.view")


def test_exact_pattern_matches_only_itself() -> None:
    pattern = PermissionPattern("treasury.ledger.view")
    assert not pattern.is_wildcard
    assert pattern.matches("treasury.ledger.view")
    assert not pattern.matches("treasury.ledger.viewer")


@pytest.mark.parametrize("raw", ["*", ".*", "treasury.*.view", "Treasury.*", "treasury"])
def test_malformed_patterns_raise(raw: str) -> None:
    with pytest.raises(ValueError):
        PermissionPattern(raw)


def test_principal_requires_tenant_and_user() -> None:
    with pytest.raises(ValueError, match="tenant_id"):
        Principal(tenant_id="", user_id="u1")
    with pytest.raises(ValueError, match="user_id"):
        Principal(tenant_id="t1", user_id="")


def test_principal_scopes() -> None:
    principal = Principal(tenant_id="t1", user_id="u1", scopes=frozenset({"superuser"}))
    assert principal.has_scope("superuser")
    assert not Principal(tenant_id="t1", user_id="u1").has_scope("superuser")
