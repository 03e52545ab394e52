"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of infrastructure (message bus,
outbox relay, identity consumer, DB engine dispose).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from treasury.core.config import get_settings
from treasury.infrastructure.messaging import (
    IdentityEventConsumer,
    OutboxRelay,
    RedisStreamsBus,
)
from treasury.infrastructure.persistence.database import dispose_engine, get_session_factory
from treasury.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)

# Grace period for workers to finish in-flight work after the stop signal.
_WORKER_SHUTDOWN_GRACE_SECONDS = 10.0


async def _stop_worker(name: str, task: asyncio.Task) -> None:
    try:
        await asyncio.wait_for(asyncio.shield(task), timeout=_WORKER_SHUTDOWN_GRACE_SECONDS)
    except TimeoutError:
        logger.warning("%s did not stop within %.0fs; cancelling", name, _WORKER_SHUTDOWN_GRACE_SECONDS)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    except Exception:
        logger.exception("%s exited with an error", name)
    logger.info("%s stopped", name)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, message bus (if enabled), outbox relay and
    identity consumer tasks (started even when the bus is not reachable
    yet; publish and subscribe reconnect on demand). Shutdown
    order: signal workers and wait for them, bus disconnect, SQL engine
    dispose.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    app.state.bus = None
    app.state.outbox_relay = None
    app.state.worker_stop = asyncio.Event()
    workers: dict[str, asyncio.Task] = {}

    if settings.redis_enabled:
        bus = RedisStreamsBus(settings=settings)
        if not await bus.connect():
            logger.warning("Message bus unavailable at startup; workers will retry")
        app.state.bus = bus
        session_factory = get_session_factory()
        if settings.outbox_relay_enabled:
            relay = OutboxRelay(session_factory, bus, settings)
            relay.attach_commit_notifier()
            app.state.outbox_relay = relay
            workers["Outbox relay"] = asyncio.create_task(
                relay.run(app.state.worker_stop), name="outbox-relay"
            )
        if settings.identity_consumer_enabled:
            consumer = IdentityEventConsumer(bus, session_factory, settings)
            workers["Identity consumer"] = asyncio.create_task(
                consumer.run(app.state.worker_stop), name="identity-consumer"
            )
    app.state.workers = workers

    yield

    # ---- Shutdown ----
    app.state.worker_stop.set()
    for name, task in workers.items():
        await _stop_worker(name, task)

    if app.state.outbox_relay is not None:
        app.state.outbox_relay.detach_commit_notifier()

    if app.state.bus is not None:
        await app.state.bus.disconnect()

    await dispose_engine()
    logger.info("Database engine disposed")
