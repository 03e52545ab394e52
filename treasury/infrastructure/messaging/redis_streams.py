"""Redis Streams message bus (implements IMessageBus).

Each topic is a stream; each durable name is a consumer group on it, so a
subscription survives restarts and resumes from the group's position.
Delivery is at-least-once:

- publish is XADD with a single "data" field;
- fetch reclaims deliveries left pending longer than claim_idle_ms
  (XAUTOCLAIM), then reads new ones (XREADGROUP ">");
- ack is XACK; nak leaves the delivery pending so it is reclaimed later.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

from treasury.application.dtos.messaging import BusMessage
from treasury.core.config import Settings, get_settings
from treasury.domain.exceptions import BrokerUnavailableException, TransientPublishFailure
from treasury.shared.utils.generators import generate_consumer_name

logger = logging.getLogger(__name__)

DATA_FIELD = b"data"


def _to_str(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


@contextmanager
def _broker_errors(topic: str) -> Iterator[None]:
    try:
        yield
    except (RedisError, OSError) as e:
        raise BrokerUnavailableException(topic, f"{type(e).__name__}: {e}") from e


def _payload(fields: dict | None) -> bytes | None:
    """Return the data field of a stream entry (bytes), or None if the entry is gone."""
    if not fields:
        return None
    raw = fields.get(DATA_FIELD, fields.get(DATA_FIELD.decode()))
    if raw is None:
        return None
    return raw if isinstance(raw, bytes) else str(raw).encode()


class RedisStreamSubscription:
    """Durable subscription: one consumer in a consumer group on one stream."""

    def __init__(
        self,
        client: redis.Redis,
        topic: str,
        durable_name: str,
        *,
        consumer_name: str | None = None,
        claim_idle_ms: int = 60_000,
    ) -> None:
        self._redis = client
        self.topic = topic
        self.durable_name = durable_name
        self.consumer_name = consumer_name or generate_consumer_name(durable_name)
        self.claim_idle_ms = claim_idle_ms
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    async def ensure_group(self) -> None:
        """Create the consumer group (and stream) if missing; start from the stream head."""
        try:
            await self._redis.xgroup_create(self.topic, self.durable_name, id="0", mkstream=True)
        except ResponseError as e:
            if "BUSYGROUP" in str(e):
                return
            raise BrokerUnavailableException(self.topic, str(e)) from e
        except (RedisError, OSError) as e:
            raise BrokerUnavailableException(self.topic, f"{type(e).__name__}: {e}") from e
        logger.info("Created consumer group %s on %s", self.durable_name, self.topic)

    async def fetch(self, max_messages: int, timeout_ms: int) -> list[BusMessage]:
        """Return reclaimed deliveries first, else wait up to timeout_ms for new ones."""
        if not self._active:
            return []
        with _broker_errors(self.topic):
            reclaimed = await self._reclaim(max_messages)
            if reclaimed:
                return reclaimed
            response = await self._redis.xreadgroup(
                self.durable_name,
                self.consumer_name,
                {self.topic: ">"},
                count=max_messages,
                block=timeout_ms,
            )
        messages: list[BusMessage] = []
        for _stream, entries in response or []:
            for entry_id, fields in entries:
                data = _payload(fields)
                if data is None:
                    continue
                messages.append(BusMessage(id=_to_str(entry_id), topic=self.topic, data=data))
        return messages

    async def _reclaim(self, max_messages: int) -> list[BusMessage]:
        result = await self._redis.xautoclaim(
            self.topic,
            self.durable_name,
            self.consumer_name,
            min_idle_time=self.claim_idle_ms,
            start_id="0-0",
            count=max_messages,
        )
        entries = result[1] if result and len(result) > 1 else []
        messages: list[BusMessage] = []
        for entry_id, fields in entries:
            data = _payload(fields)
            if data is None:
                # Trimmed from the stream while pending; nothing to redeliver.
                await self._redis.xack(self.topic, self.durable_name, entry_id)
                continue
            messages.append(
                BusMessage(
                    id=_to_str(entry_id),
                    topic=self.topic,
                    data=data,
                    delivery_count=await self._delivery_count(entry_id),
                )
            )
        if messages:
            logger.info("Reclaimed %d pending message(s) on %s", len(messages), self.topic)
        return messages

    async def _delivery_count(self, entry_id: bytes | str) -> int:
        """Times delivered according to the group's pending list (XAUTOCLAIM counts the claim)."""
        pending = await self._redis.xpending_range(
            self.topic, self.durable_name, min=entry_id, max=entry_id, count=1
        )
        if not pending:
            # Acked meanwhile by its previous owner.
            return 2
        return int(pending[0]["times_delivered"])

    async def ack(self, message: BusMessage) -> None:
        with _broker_errors(self.topic):
            await self._redis.xack(self.topic, self.durable_name, message.id)

    async def nak(self, message: BusMessage) -> None:
        """Leave the delivery pending; it is redelivered after claim_idle_ms."""
        logger.debug("Nak %s on %s (redelivery after %dms)", message.id, self.topic, self.claim_idle_ms)

    async def unsubscribe(self) -> None:
        """Stop fetching. The consumer group and its position are kept."""
        self._active = False
        logger.info("Unsubscribed %s from %s", self.durable_name, self.topic)


class RedisStreamsBus:
    """Message bus on Redis Streams. Pass redis_client for DI/testing.

    A bus that could not connect keeps trying: publish and subscribe
    reconnect on demand, at most once per redis_reconnect_interval_seconds,
    and raise the usual transient errors while the broker stays down.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
        *,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None
        self._monotonic = monotonic
        self._next_connect_at = 0.0

    def _new_client(self) -> redis.Redis:
        return redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=(
                self.settings.redis_password.get_secret_value()
                if self.settings.redis_password
                else None
            ),
            decode_responses=False,
            socket_connect_timeout=5,
        )

    async def connect(self) -> bool:
        """Establish the Redis connection; return whether the bus is available."""
        if self.is_available():
            return True
        client = self._new_client()
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            self._next_connect_at = (
                self._monotonic() + self.settings.redis_reconnect_interval_seconds
            )
            logger.warning("Redis streams connection failed: %s", e)
            await client.aclose()
            return False
        self.redis = client
        self._connected = True
        logger.info("Redis streams bus connected")
        return True

    async def _ensure_connected(self) -> redis.Redis | None:
        if self.is_available():
            return self.redis
        if self._monotonic() < self._next_connect_at:
            return None
        await self.connect()
        return self.redis if self.is_available() else None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis streams bus disconnected")

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def publish(self, topic: str, message: bytes) -> str:
        """XADD message to topic; return the entry id.

        Raises:
            TransientPublishFailure: not connected, or Redis rejected the write.
        """
        client = await self._ensure_connected()
        if client is None:
            raise TransientPublishFailure(topic, "message bus not connected")
        try:
            entry_id = await client.xadd(topic, {DATA_FIELD: message})
        except (RedisError, OSError) as e:
            raise TransientPublishFailure(topic, f"{type(e).__name__}: {e}") from e
        return _to_str(entry_id)

    async def subscribe(self, topic: str, durable_name: str) -> RedisStreamSubscription:
        """Join (creating if needed) the durable consumer group for topic."""
        client = await self._ensure_connected()
        if client is None:
            raise BrokerUnavailableException(topic, "message bus not connected")
        subscription = RedisStreamSubscription(
            client,
            topic,
            durable_name,
            claim_idle_ms=self.settings.consumer_claim_idle_ms,
        )
        await subscription.ensure_group()
        logger.info("Subscribed %s to %s as %s", durable_name, topic, subscription.consumer_name)
        return subscription
