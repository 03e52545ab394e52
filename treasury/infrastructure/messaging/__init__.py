"""Messaging: Redis Streams bus, outbox relay and inbound identity consumer."""

from treasury.infrastructure.messaging.identity_consumer import (
    IdentityEventConsumer,
    parse_identity_event,
)
from treasury.infrastructure.messaging.outbox_relay import OutboxRelay, build_envelope
from treasury.infrastructure.messaging.redis_streams import (
    RedisStreamsBus,
    RedisStreamSubscription,
)

__all__ = [
    "IdentityEventConsumer",
    "OutboxRelay",
    "RedisStreamSubscription",
    "RedisStreamsBus",
    "build_envelope",
    "parse_identity_event",
]
