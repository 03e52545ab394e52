"""Role provisioning, assignment and resolution against a real database."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from treasury.application.dtos.permission import PermissionDefinition
from treasury.application.services.authorization_service import AuthorizationService
from treasury.domain.exceptions import (
    DuplicateAssignmentException,
    DuplicateCodeException,
    SystemRoleProtectedException,
)
from treasury.infrastructure.persistence.models import Assignment, OutboxEvent, RolePermission
from treasury.infrastructure.persistence.repositories import (
    PermissionRepository,
    RolePermissionRepository,
    RoleRepository,
)
from treasury.infrastructure.services import PermissionResolver, TenantInitializationService
from treasury.shared.utils.datetime import utc_now


async def _initialized(session: AsyncSession, tenant_id: str = "tenant-a") -> TenantInitializationService:
    init = TenantInitializationService(session)
    await init.initialize_tenant(tenant_id)
    return init


async def test_initialize_tenant_is_idempotent(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A second run creates nothing and queues no further events."""
    async with session_factory() as session, session.begin():
        first = await TenantInitializationService(session).initialize_tenant("tenant-a")
    assert set(first) == {"finance_admin", "accountant", "cashier", "approver", "viewer"}
    async with session_factory() as session, session.begin():
        init = TenantInitializationService(session)
        second = await init.initialize_tenant("tenant-a")
        assert await init.seed_permission_catalog() == 0
    assert all(p.granted == () for p in second.values())
    assert len(second["finance_admin"].already_granted) == 24

    async with session_factory() as session:
        events = await session.scalar(select(func.count()).select_from(OutboxEvent))
        grants = await session.scalar(select(func.count()).select_from(RolePermission))
    assert events == 5
    assert grants == 24 + 13 + 4 + 9 + 6


async def test_assigned_role_resolves_permissions(db_session: AsyncSession) -> None:
    init = await _initialized(db_session)
    await init.role_service.assign_role("tenant-a", "idp-7", "cashier", assigned_by="admin")

    resolver = PermissionResolver(db_session)
    assert await resolver.get_user_roles("idp-7", "tenant-a") == {"cashier"}
    assert await resolver.get_user_permissions("idp-7", "tenant-a") == {
        "treasury.payments.create",
        "treasury.payments.process",
        "treasury.payments.view",
        "treasury.invoices.view",
    }
    assert await resolver.has_permission("idp-7", "tenant-a", "treasury.payments.process")
    assert not await resolver.has_permission("idp-7", "tenant-a", "treasury.payments.refund")
    assert not await resolver.has_permission("idp-7", "tenant-a", "treasury.payments.*")


async def test_expired_assignment_stops_resolving(db_session: AsyncSession) -> None:
    """An assignment is in force strictly before expires_at, then never again."""
    init = await _initialized(db_session)
    expires_at = utc_now() + timedelta(hours=1)
    await init.role_service.assign_role("tenant-a", "idp-7", "approver", expires_at=expires_at)

    before = PermissionResolver(db_session, clock=lambda: expires_at - timedelta(seconds=1))
    after = PermissionResolver(db_session, clock=lambda: expires_at + timedelta(seconds=1))
    assert await before.has_role("idp-7", "tenant-a", "approver")
    assert await AuthorizationService(after).check_role("tenant-a", "idp-7", "approver") is False
    assert await after.get_user_permissions("idp-7", "tenant-a") == set()

    rows = await db_session.scalar(select(func.count()).select_from(Assignment))
    assert rows == 1


async def test_assignment_created_already_expired_never_resolves(db_session: AsyncSession) -> None:
    """expires_at = now - 1s is stored, and check_role is False straight away."""
    init = await _initialized(db_session)
    assignment = await init.role_service.assign_role(
        "tenant-a", "idp-8", "viewer", expires_at=utc_now() - timedelta(seconds=1)
    )
    assert assignment.expires_at is not None

    auth = AuthorizationService(PermissionResolver(db_session))
    assert await auth.check_role("tenant-a", "idp-8", "viewer") is False
    assert await auth.check_permission("tenant-a", "idp-8", "treasury.ledger.view") is False
    rows = await db_session.scalar(select(func.count()).select_from(Assignment))
    assert rows == 1


async def test_reassign_after_expiry_replaces_link(db_session: AsyncSession) -> None:
    init = await _initialized(db_session)
    now = utc_now()
    await init.role_service.assign_role(
        "tenant-a", "idp-7", "viewer", expires_at=now + timedelta(minutes=5)
    )
    with pytest.raises(DuplicateAssignmentException):
        await init.role_service.assign_role("tenant-a", "idp-7", "viewer")

    init.role_service._clock = lambda: now + timedelta(minutes=10)
    renewed = await init.role_service.assign_role("tenant-a", "idp-7", "viewer")
    assert renewed.expires_at is None
    rows = await db_session.scalar(select(func.count()).select_from(Assignment))
    assert rows == 1


async def test_wildcard_grant_is_a_snapshot(db_session: AsyncSession) -> None:
    """A permission added after provisioning is not granted retroactively."""
    init = await _initialized(db_session)
    provisioned = await init.role_service.provision_role(
        "tenant-a", "payments_clerk", "Payments Clerk", ["treasury.payments.*"]
    )
    assert len(provisioned.granted) == 5
    await init.permission_service.create_permission(
        PermissionDefinition(
            code="treasury.payments.void", name="Void Payments", module="payments", action="void"
        )
    )
    await init.role_service.assign_role("tenant-a", "idp-9", "payments_clerk")

    resolver = PermissionResolver(db_session)
    codes = await resolver.get_user_permissions("idp-9", "tenant-a")
    assert len(codes) == 5
    assert "treasury.payments.void" not in codes

    again = await init.role_service.provision_role(
        "tenant-a",
        "payments_clerk",
        "Payments Clerk",
        ["treasury.payments.*"],
        reuse_existing=True,
    )
    assert again.granted == ("treasury.payments.void",)


async def test_provision_existing_code_conflicts(db_session: AsyncSession) -> None:
    """A taken role code, system roles included, is a conflict and grants nothing."""
    init = await _initialized(db_session)
    viewer = await RoleRepository(db_session).get_by_code_and_tenant("viewer", "tenant-a")
    grants = RolePermissionRepository(db_session)
    before = await grants.get_permission_codes_for_role(viewer.id, "tenant-a")

    with pytest.raises(DuplicateCodeException):
        await init.role_service.provision_role(
            "tenant-a", "viewer", "Hijacked", ["treasury.payments.*"]
        )
    with pytest.raises(DuplicateCodeException):
        await init.role_service.provision_role(
            "tenant-a", "viewer", "Hijacked", ["treasury.payments.*"], reuse_existing=True
        )
    assert await grants.get_permission_codes_for_role(viewer.id, "tenant-a") == before


async def test_tenants_are_isolated(db_session: AsyncSession) -> None:
    """Same role code in two tenants; a grant in one never resolves in the other."""
    init = await _initialized(db_session, "tenant-a")
    await init.initialize_tenant("tenant-b")
    await init.role_service.assign_role("tenant-a", "idp-1", "finance_admin")

    resolver = PermissionResolver(db_session)
    assert await resolver.has_permission("idp-1", "tenant-a", "treasury.ledger.post")
    assert not await resolver.has_permission("idp-1", "tenant-b", "treasury.ledger.post")
    assert await resolver.get_user_roles("idp-1", "tenant-b") == set()

    roles = RoleRepository(db_session)
    assert len(await roles.get_by_tenant("tenant-a")) == 5
    assert len(await roles.get_by_tenant("tenant-b")) == 5


async def test_role_code_unique_per_tenant(db_session: AsyncSession) -> None:
    roles = RoleRepository(db_session)
    await roles.create_role("tenant-a", "auditor", "Auditor")
    with pytest.raises(DuplicateCodeException):
        await roles.create_role("tenant-a", "auditor", "Auditor again")
    await roles.create_role("tenant-b", "auditor", "Auditor")


async def test_permission_code_unique(db_session: AsyncSession) -> None:
    repo = PermissionRepository(db_session)
    definition = PermissionDefinition(
        code="treasury.reports.view", name="View Reports", module="reports", action="view"
    )
    await repo.create_permission(definition)
    with pytest.raises(DuplicateCodeException):
        await repo.create_permission(definition)
    _, created = await repo.ensure_permission(definition)
    assert created is False


async def test_wildcard_prefix_escapes_like_metacharacters(db_session: AsyncSession) -> None:
    repo = PermissionRepository(db_session)
    for code in ("treasury.cash_pool.view", "treasury.cashxpool.view"):
        await repo.create_permission(
            PermissionDefinition(code=code, name=code, module="cash", action="view")
        )
    matched = await repo.list_by_prefix("treasury.cash_pool.")
    assert [p.code for p in matched] == ["treasury.cash_pool.view"]


async def test_delete_custom_role_cascades(db_session: AsyncSession) -> None:
    init = await _initialized(db_session)
    await init.role_service.provision_role(
        "tenant-a", "auditor", "Auditor", ["treasury.ledger.view"]
    )
    await init.role_service.assign_role("tenant-a", "idp-3", "auditor")
    await init.role_service.delete_role("tenant-a", "auditor", deleted_by="admin")

    resolver = PermissionResolver(db_session)
    assert await resolver.get_user_roles("idp-3", "tenant-a") == set()
    assert await RoleRepository(db_session).get_by_code_and_tenant("auditor", "tenant-a") is None

    with pytest.raises(SystemRoleProtectedException):
        await init.role_service.delete_role("tenant-a", "finance_admin")
