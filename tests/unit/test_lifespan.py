"""Unit tests for application startup and shutdown wiring."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI

from treasury.core import lifespan as lifespan_module
from treasury.core.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:", **overrides)


class _Worker:
    """Stands in for the relay and the consumer: runs until told to stop."""

    instances: list["_Worker"] = []

    def __init__(self, *args, **kwargs) -> None:
        self.stopped = False
        self.attached = False
        _Worker.instances.append(self)

    def attach_commit_notifier(self) -> None:
        self.attached = True

    def detach_commit_notifier(self) -> None:
        self.attached = False

    async def run(self, stop_event: asyncio.Event) -> None:
        await stop_event.wait()
        self.stopped = True


@pytest.fixture
def bus_cls(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    bus = MagicMock()
    bus.connect = AsyncMock(return_value=True)
    bus.disconnect = AsyncMock()
    bus_cls = MagicMock(return_value=bus)
    monkeypatch.setattr(lifespan_module, "RedisStreamsBus", bus_cls)
    monkeypatch.setattr(lifespan_module, "OutboxRelay", _Worker)
    monkeypatch.setattr(lifespan_module, "IdentityEventConsumer", _Worker)
    monkeypatch.setattr(lifespan_module, "get_session_factory", MagicMock())
    monkeypatch.setattr(lifespan_module, "dispose_engine", AsyncMock())
    _Worker.instances = []
    return bus_cls


async def test_no_workers_when_redis_disabled(monkeypatch, bus_cls) -> None:
    monkeypatch.setattr(lifespan_module, "get_settings", lambda: _settings(redis_enabled=False))
    app = FastAPI()
    async with lifespan_module.create_lifespan(app):
        assert app.state.bus is None
        assert app.state.workers == {}
    bus_cls.assert_not_called()
    lifespan_module.dispose_engine.assert_awaited_once()


async def test_workers_start_when_bus_unreachable(monkeypatch, bus_cls) -> None:
    """The relay and consumer run and retry until the broker comes back."""
    monkeypatch.setattr(lifespan_module, "get_settings", lambda: _settings(redis_enabled=True))
    bus_cls.return_value.connect.return_value = False
    app = FastAPI()
    async with lifespan_module.create_lifespan(app):
        assert set(app.state.workers) == {"Outbox relay", "Identity consumer"}
        assert app.state.bus is bus_cls.return_value
    assert all(worker.stopped for worker in _Worker.instances)
    bus_cls.return_value.disconnect.assert_awaited_once()


async def test_workers_start_and_stop_with_app(monkeypatch, bus_cls) -> None:
    monkeypatch.setattr(lifespan_module, "get_settings", lambda: _settings(redis_enabled=True))
    app = FastAPI()
    async with lifespan_module.create_lifespan(app):
        assert set(app.state.workers) == {"Outbox relay", "Identity consumer"}
        relay = app.state.outbox_relay
        assert relay.attached
    assert all(worker.stopped for worker in _Worker.instances)
    assert not relay.attached
    bus_cls.return_value.disconnect.assert_awaited_once()


async def test_workers_can_be_disabled(monkeypatch, bus_cls) -> None:
    monkeypatch.setattr(
        lifespan_module,
        "get_settings",
        lambda: _settings(
            redis_enabled=True, outbox_relay_enabled=False, identity_consumer_enabled=False
        ),
    )
    app = FastAPI()
    async with lifespan_module.create_lifespan(app):
        assert app.state.workers == {}
        assert app.state.outbox_relay is None
