"""Identity event consumer against a real database and an in-memory bus."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from treasury.application.dtos.messaging import BusMessage
from treasury.application.services.directory_sync_service import DirectorySyncService
from treasury.core.config import Settings
from treasury.domain.exceptions import BrokerUnavailableException
from treasury.infrastructure.messaging.identity_consumer import IdentityEventConsumer
from treasury.infrastructure.persistence.models import DirectoryUser
from treasury.infrastructure.persistence.repositories import DirectoryUserRepository

CREATED = "auth.user.created"
UPDATED = "auth.user.updated"


def _message(message_id: str, body: dict | None = None, topic: str = CREATED) -> BusMessage:
    body = body if body is not None else {
        "user_id": "idp-1",
        "tenant_id": "tenant-a",
        "email": "ada@example.com",
        "created_at": "2026-02-01T10:00:00Z",
    }
    return BusMessage(id=message_id, topic=topic, data=json.dumps(body).encode())


@pytest.fixture
def consumer(serial_session_factory, fake_bus) -> IdentityEventConsumer:
    """Consumer whose per-topic loops write concurrently, so its sessions serialize."""
    settings = Settings(
        database_url="sqlite+aiosqlite:///:memory:", consumer_block_ms=10, consumer_batch_size=5
    )
    return IdentityEventConsumer(
        fake_bus, serial_session_factory, settings, backoff_seconds=0.01
    )


async def _directory_rows(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(DirectoryUser))


async def test_valid_event_is_synced_then_acked(consumer, session_factory, fake_bus) -> None:
    subscription = await fake_bus.subscribe(CREATED, "treasury-user-created")
    assert await consumer.handle(subscription, _message("1-0")) is True
    assert subscription.acked == ["1-0"]

    async with session_factory() as session:
        user = await DirectoryUserRepository(session).get_entity_by_external_id("tenant-a", "idp-1")
    assert user is not None
    assert user.email == "ada@example.com"


async def test_redelivery_is_idempotent(consumer, session_factory, fake_bus) -> None:
    subscription = await fake_bus.subscribe(CREATED, "treasury-user-created")
    await consumer.handle(subscription, _message("1-0"))
    await consumer.handle(subscription, _message("1-0"))
    assert subscription.acked == ["1-0", "1-0"]
    assert await _directory_rows(session_factory) == 1


async def test_out_of_order_update_is_acked_but_not_applied(
    consumer, session_factory, fake_bus
) -> None:
    subscription = await fake_bus.subscribe(UPDATED, "treasury-user-updated")
    newer = {"user_id": "idp-1", "tenant_id": "tenant-a", "email": "new@example.com",
             "updated_at": "2026-02-02T10:00:00Z"}
    older = {"user_id": "idp-1", "tenant_id": "tenant-a", "email": "old@example.com",
             "updated_at": "2026-02-01T10:00:00Z"}
    await consumer.handle(subscription, _message("2-0", newer, UPDATED))
    assert await consumer.handle(subscription, _message("1-0", older, UPDATED)) is True

    async with session_factory() as session:
        user = await DirectoryUserRepository(session).get_entity_by_external_id("tenant-a", "idp-1")
    assert user.email == "new@example.com"


async def test_malformed_event_is_nacked(consumer, session_factory, fake_bus) -> None:
    subscription = await fake_bus.subscribe(CREATED, "treasury-user-created")
    bad = BusMessage(id="3-0", topic=CREATED, data=b"not json")
    assert await consumer.handle(subscription, bad) is False
    assert subscription.nacked == ["3-0"]
    assert subscription.acked == []
    assert consumer.stats.poison == 1
    assert await _directory_rows(session_factory) == 0


async def test_sync_failure_is_nacked(consumer, fake_bus, monkeypatch) -> None:
    """A failing store never acks; the delivery is retried later."""
    monkeypatch.setattr(
        DirectorySyncService, "sync_user", AsyncMock(side_effect=RuntimeError("db down"))
    )
    subscription = await fake_bus.subscribe(CREATED, "treasury-user-created")
    assert await consumer.handle(subscription, _message("4-0")) is False
    assert subscription.nacked == ["4-0"]
    assert consumer.stats.nacked == 1
    assert consumer.stats.poison == 0


async def test_run_consumes_both_topics_and_unsubscribes(
    consumer, session_factory, fake_bus
) -> None:
    created = await fake_bus.subscribe(CREATED, "treasury-user-created")
    updated = await fake_bus.subscribe(UPDATED, "treasury-user-updated")
    created.queue.append(_message("1-0"))
    updated.queue.append(
        _message(
            "1-0",
            {"user_id": "idp-2", "tenant_id": "tenant-a", "email": "bo@example.com"},
            UPDATED,
        )
    )

    stop = asyncio.Event()
    task = asyncio.create_task(consumer.run(stop))
    for _ in range(200):
        if created.acked and updated.acked:
            break
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=5)

    assert created.acked == ["1-0"]
    assert updated.acked == ["1-0"]
    assert created.unsubscribed and updated.unsubscribed
    assert await _directory_rows(session_factory) == 2


async def test_broker_outage_backs_off_and_recovers(consumer, fake_bus) -> None:
    real_subscribe = fake_bus.subscribe
    calls = {"n": 0}

    async def flaky_subscribe(topic: str, durable_name: str):
        calls["n"] += 1
        if calls["n"] == 1:
            raise BrokerUnavailableException(topic, "connection refused")
        return await real_subscribe(topic, durable_name)

    fake_bus.subscribe = flaky_subscribe
    stop = asyncio.Event()
    task = asyncio.create_task(consumer.consume(CREATED, "treasury-user-created", stop))
    for _ in range(200):
        if CREATED in fake_bus.subscriptions:
            break
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=5)

    assert calls["n"] >= 2
    assert fake_bus.subscriptions[CREATED].unsubscribed


async def test_unexpected_error_in_one_topic_stops_the_other(consumer, fake_bus) -> None:
    """run() fails as a whole: the sibling loop is cancelled and unsubscribes."""
    created = await fake_bus.subscribe(CREATED, "treasury-user-created")
    updated = await fake_bus.subscribe(UPDATED, "treasury-user-updated")
    created.fetch = AsyncMock(side_effect=RuntimeError("stream decoding bug"))

    stop = asyncio.Event()
    with pytest.raises(ExceptionGroup) as exc_info:
        await asyncio.wait_for(consumer.run(stop), timeout=5)

    assert exc_info.group_contains(RuntimeError, match="stream decoding bug")
    assert created.unsubscribed
    assert updated.unsubscribed
    assert not stop.is_set()
