"""Pytest configuration and fixtures for the treasury service.

Store-backed tests run on a per-test SQLite file (aiosqlite) in WAL mode,
so a request's read session and its write session can overlap the way
they do on Postgres. HTTP tests use treasury.main:app with the DB
dependencies pointed at that file. Redis is disabled; bus behaviour is
covered with AsyncMock clients and the in-memory FakeBus below.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")

import asyncio
import itertools
from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from treasury.application.dtos.messaging import BusMessage
from treasury.domain.exceptions import TransientPublishFailure
from treasury.infrastructure.persistence import models  # noqa: F401
from treasury.infrastructure.persistence.database import (
    Base,
    get_db,
    get_db_transactional,
)
from treasury.main import app


class FakeSubscription:
    """In-memory durable subscription recording acks, naks and unsubscribe."""

    def __init__(self, topic: str, durable_name: str) -> None:
        self.topic = topic
        self.durable_name = durable_name
        self.queue: list[BusMessage] = []
        self.acked: list[str] = []
        self.nacked: list[str] = []
        self.unsubscribed = False

    async def fetch(self, max_messages: int, timeout_ms: int) -> list[BusMessage]:
        batch, self.queue = self.queue[:max_messages], self.queue[max_messages:]
        if not batch:
            await asyncio.sleep(min(timeout_ms, 10) / 1000)
        return batch

    async def ack(self, message: BusMessage) -> None:
        self.acked.append(message.id)

    async def nak(self, message: BusMessage) -> None:
        self.nacked.append(message.id)

    async def unsubscribe(self) -> None:
        self.unsubscribed = True


class FakeBus:
    """In-memory message bus. fail_next makes the next N publishes fail."""

    def __init__(self) -> None:
        self.published: list[tuple[str, bytes]] = []
        self.subscriptions: dict[str, FakeSubscription] = {}
        self.fail_next = 0
        self.fail_topics: set[str] = set()
        self._ids = itertools.count(1)

    async def publish(self, topic: str, message: bytes) -> str:
        if self.fail_next > 0 or topic in self.fail_topics:
            self.fail_next = max(self.fail_next - 1, 0)
            raise TransientPublishFailure(topic, "broker down")
        self.published.append((topic, message))
        return f"{next(self._ids)}-0"

    async def subscribe(self, topic: str, durable_name: str) -> FakeSubscription:
        if topic not in self.subscriptions:
            self.subscriptions[topic] = FakeSubscription(topic, durable_name)
        return self.subscriptions[topic]

    def topics(self) -> list[str]:
        return [topic for topic, _ in self.published]


def make_token(
    user_id: str = "user-1",
    tenant_id: str = "tenant-a",
    scope: str | list[str] | None = None,
) -> str:
    """Bearer token as forwarded by the gateway (the signature is not checked)."""
    claims: dict = {"sub": user_id, "tenant_id": tenant_id}
    if scope is not None:
        claims["scope"] = scope
    return jwt.encode(claims, "test-signing-key", algorithm="HS256")


def _sqlite_engine(path, begin_statement: str = "BEGIN", **kwargs) -> AsyncEngine:
    """aiosqlite engine on path in WAL mode with foreign keys on."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", **kwargs)

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; emit it explicitly.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(begin_statement)

    return engine


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "treasury.db"


@pytest.fixture
async def engine(db_path) -> AsyncIterator[AsyncEngine]:
    """Fresh SQLite database per test, schema created from the ORM metadata."""
    engine = _sqlite_engine(db_path)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def serial_session_factory(
    engine: AsyncEngine, db_path
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Sessions that take the write lock at BEGIN and wait for it.

    For workers running several write transactions concurrently: a deferred
    BEGIN would let two of them read, then fail to upgrade to a write.
    """
    serial = _sqlite_engine(db_path, "BEGIN IMMEDIATE", connect_args={"timeout": 30})
    yield async_sessionmaker(
        bind=serial, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    await serial.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Session with an open transaction, committed at teardown."""
    async with session_factory() as session:
        async with session.begin():
            yield session


@pytest.fixture
def fake_bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client for the FastAPI app (ASGI), DB dependencies on the test database."""

    async def _get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    async def _get_db_transactional() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            async with session.begin():
                yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_db_transactional] = _get_db_transactional
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    """Factory returning an Authorization header for (user_id, tenant_id, scope)."""

    def _header(
        user_id: str = "user-1",
        tenant_id: str = "tenant-a",
        scope: str | list[str] | None = None,
    ) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, tenant_id, scope)}"}

    return _header
