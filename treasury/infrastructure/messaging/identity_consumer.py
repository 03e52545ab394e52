"""Inbound identity events: keep the directory shadow in step with the identity provider.

One durable subscription per topic (auth.user.created, auth.user.updated).
A delivery is acked only after its directory sync commits; anything else
leaves it pending for redelivery.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from treasury.application.dtos.messaging import BusMessage
from treasury.application.interfaces.services import IMessageBus, ISubscription
from treasury.application.services.directory_sync_service import DirectorySyncService
from treasury.core.config import Settings, get_settings
from treasury.domain.exceptions import BrokerUnavailableException, PoisonMessageException
from treasury.infrastructure.persistence.repositories.directory_user_repo import (
    DirectoryUserRepository,
)
from treasury.schemas.identity_event import IdentityUserEvent
from treasury.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ConsumerStats:
    acked: int = 0
    nacked: int = 0
    poison: int = 0


def parse_identity_event(message: BusMessage) -> IdentityUserEvent:
    """Decode a delivery. Raises PoisonMessageException when it is not a valid event."""
    try:
        return IdentityUserEvent.model_validate_json(message.data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise PoisonMessageException(
            message.topic, message.id, f"{location}: {first['msg']}"
        ) from e


class IdentityEventConsumer:
    """Durable consumer of identity-provider user events."""

    def __init__(
        self,
        bus: IMessageBus,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        backoff_seconds: float = 5.0,
    ) -> None:
        settings = settings or get_settings()
        self._bus = bus
        self._session_factory = session_factory
        self._clock = clock
        self.backoff_seconds = backoff_seconds
        self.batch_size = settings.consumer_batch_size
        self.block_ms = settings.consumer_block_ms
        self.subscriptions = (
            (settings.identity_user_created_topic, settings.identity_user_created_durable),
            (settings.identity_user_updated_topic, settings.identity_user_updated_durable),
        )
        self.stats = ConsumerStats()

    async def handle(self, subscription: ISubscription, message: BusMessage) -> bool:
        """Process one delivery; return True when it was acked."""
        try:
            event = parse_identity_event(message)
        except PoisonMessageException as e:
            self.stats.poison += 1
            self.stats.nacked += 1
            logger.error("%s (%s)", e.message, e.details["reason"])
            await subscription.nak(message)
            return False

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    service = DirectorySyncService(DirectoryUserRepository(session), clock=self._clock)
                    await service.sync_user(
                        event.tenant_id,
                        event.user_id,
                        event.email,
                        occurred_at=event.event_time,
                    )
        except Exception:
            self.stats.nacked += 1
            logger.exception(
                "Directory sync failed for %s on %s (delivery %d)",
                message.id,
                message.topic,
                message.delivery_count,
            )
            await subscription.nak(message)
            return False

        await subscription.ack(message)
        self.stats.acked += 1
        logger.info(
            "User synced from %s: %s/%s", message.topic, event.tenant_id, event.user_id
        )
        return True

    async def _pause(self, stop_event: asyncio.Event) -> None:
        with suppress(TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=self.backoff_seconds)

    async def consume(self, topic: str, durable_name: str, stop_event: asyncio.Event) -> None:
        """Fetch and handle deliveries for one topic until stop_event is set.

        The delivery in hand is finished before stopping; deliveries fetched
        but not yet handled stay pending and are reclaimed later.
        """
        subscription: ISubscription | None = None
        try:
            while not stop_event.is_set():
                try:
                    if subscription is None:
                        subscription = await self._bus.subscribe(topic, durable_name)
                    messages = await subscription.fetch(self.batch_size, self.block_ms)
                    for message in messages:
                        if stop_event.is_set():
                            break
                        await self.handle(subscription, message)
                except BrokerUnavailableException as e:
                    logger.warning(
                        "Message bus unavailable for %s, retrying in %.1fs: %s",
                        topic,
                        self.backoff_seconds,
                        e.details.get("reason"),
                    )
                    await self._pause(stop_event)
        finally:
            if subscription is not None:
                await subscription.unsubscribe()

    async def run(self, stop_event: asyncio.Event) -> None:
        """Consume every configured topic concurrently until stop_event is set.

        An unexpected error in one topic's loop cancels the others (each
        unsubscribes on the way out) and propagates as an ExceptionGroup.
        """
        logger.info(
            "Identity consumer started: %s",
            ", ".join(f"{topic} ({durable})" for topic, durable in self.subscriptions),
        )
        try:
            async with asyncio.TaskGroup() as group:
                for topic, durable in self.subscriptions:
                    group.create_task(
                        self.consume(topic, durable, stop_event), name=f"consume:{topic}"
                    )
        except* Exception:
            logger.exception("Identity consumer failed")
            raise
        logger.info(
            "Identity consumer stopped (acked=%d nacked=%d poison=%d)",
            self.stats.acked,
            self.stats.nacked,
            self.stats.poison,
        )
