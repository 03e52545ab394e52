"""DTOs for the outbox store and relay (no dependency on ORM)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class OutboxRecordResult:
    """Outbox record read-model."""

    id: str
    tenant_id: str
    aggregate_type: str
    aggregate_id: str
    event_type: str
    payload: Any
    status: str
    attempts: int
    last_attempt_at: datetime | None
    published_at: datetime | None
    error_message: str | None
    created_at: datetime


@dataclass
class RelayCycleResult:
    """Counts for one relay cycle (claimed = published + failed + dead_lettered + deferred).

    deferred counts records held back because an earlier record of the same
    aggregate was not delivered in this cycle; they stay in place untouched.
    """

    claimed: int = 0
    published: int = 0
    failed: int = 0
    dead_lettered: int = 0
    deferred: int = 0
    failed_ids: list[str] = field(default_factory=list)
