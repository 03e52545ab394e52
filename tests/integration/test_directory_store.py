"""Directory shadow sync against a real database."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from treasury.application.services.directory_sync_service import DirectorySyncService
from treasury.domain.enums import DirectoryUserStatus
from treasury.infrastructure.persistence.models import DirectoryUser, OutboxEvent
from treasury.infrastructure.persistence.repositories import DirectoryUserRepository

T0 = datetime(2026, 4, 1, 8, 0, tzinfo=UTC)


def _service(session: AsyncSession) -> DirectorySyncService:
    return DirectorySyncService(DirectoryUserRepository(session), clock=lambda: T0)


async def test_sync_twice_yields_one_row(db_session: AsyncSession) -> None:
    service = _service(db_session)
    first = await service.sync_user("tenant-a", "idp-1", "ada@example.com")
    second = await service.sync_user("tenant-a", "idp-1", "ada@example.com")
    assert first.id == second.id
    assert second.status == "active"
    assert second.sync_status == "synced"
    count = await db_session.scalar(select(func.count()).select_from(DirectoryUser))
    assert count == 1


async def test_sync_emits_no_outbox_event(db_session: AsyncSession) -> None:
    await _service(db_session).sync_user("tenant-a", "idp-1", "ada@example.com")
    assert await db_session.scalar(select(func.count()).select_from(OutboxEvent)) == 0


async def test_newer_update_applies_older_is_skipped(db_session: AsyncSession) -> None:
    service = _service(db_session)
    await service.sync_user("tenant-a", "idp-1", "v1@example.com", occurred_at=T0)
    updated = await service.sync_user(
        "tenant-a", "idp-1", "v2@example.com", occurred_at=T0 + timedelta(minutes=1)
    )
    assert updated.email == "v2@example.com"
    stale = await service.sync_user(
        "tenant-a", "idp-1", "v0@example.com", occurred_at=T0 - timedelta(minutes=1)
    )
    assert stale.email == "v2@example.com"
    assert stale.last_sync_at == T0 + timedelta(minutes=1)


async def test_same_external_id_in_two_tenants(db_session: AsyncSession) -> None:
    service = _service(db_session)
    a = await service.sync_user("tenant-a", "idp-1", "ada@example.com")
    b = await service.sync_user("tenant-b", "idp-1", "ada@example.com")
    assert a.id != b.id
    assert (await service.get_by_external_id("tenant-b", "idp-1")).tenant_id == "tenant-b"


async def test_concurrent_insert_race_keeps_transaction_usable(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A unique violation inside insert_if_absent rolls back only its savepoint."""
    async with session_factory() as session, session.begin():
        await _service(session).sync_user("tenant-a", "idp-1", "ada@example.com")

    async with session_factory() as session, session.begin():
        repo = DirectoryUserRepository(session)
        assert await repo.insert_if_absent("tenant-a", "idp-1", "dup@example.com", T0) is None
        user = await repo.get_entity_by_external_id("tenant-a", "idp-1")
        assert user is not None
        assert user.email == "ada@example.com"


async def test_status_change(db_session: AsyncSession) -> None:
    service = _service(db_session)
    user = await service.sync_user("tenant-a", "idp-1", "ada@example.com")
    suspended = await service.set_status("tenant-a", user.id, DirectoryUserStatus.SUSPENDED)
    assert suspended.status == "suspended"
    assert (await service.get_user("tenant-a", user.id)).status == "suspended"
