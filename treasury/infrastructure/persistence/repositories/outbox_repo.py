"""Outbox repository: append inside the caller's transaction, relay-side transitions."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.application.dtos.outbox import OutboxRecordResult
from treasury.domain.exceptions import OutboxTransactionRequiredException
from treasury.infrastructure.persistence.models.outbox_event import OutboxEvent
from treasury.shared.enums import OutboxStatus
from treasury.shared.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)

_DELIVERABLE = (OutboxStatus.PENDING.value, OutboxStatus.FAILED.value)
_TERMINAL = (OutboxStatus.PUBLISHED.value, OutboxStatus.DEAD_LETTERED.value)

# Session.info flag read by the relay's commit notifier.
OUTBOX_APPENDED_KEY = "outbox_appended"


def _outbox_to_result(e: OutboxEvent) -> OutboxRecordResult:
    return OutboxRecordResult(
        id=e.id,
        tenant_id=e.tenant_id,
        aggregate_type=e.aggregate_type,
        aggregate_id=e.aggregate_id,
        event_type=e.event_type,
        payload=e.payload,
        status=e.status,
        attempts=e.attempts,
        last_attempt_at=ensure_utc(e.last_attempt_at),
        published_at=ensure_utc(e.published_at),
        error_message=e.error_message,
        created_at=ensure_utc(e.created_at) or e.created_at,
    )


class OutboxRepository:
    """Durable outbox bound to one session.

    append() joins the caller's open transaction and never commits. The
    mark_* transitions are conditional on the record not being terminal,
    so a PUBLISHED record is never reverted.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def append(
        self,
        tenant_id: str,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: Any,
    ) -> OutboxRecordResult:
        """Insert a PENDING record in the current transaction.

        Raises:
            OutboxTransactionRequiredException: the session has no open transaction.
        """
        if not self.db.in_transaction():
            raise OutboxTransactionRequiredException(event_type)
        record = OutboxEvent(
            tenant_id=tenant_id,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            payload=payload,
            status=OutboxStatus.PENDING.value,
            attempts=0,
        )
        self.db.add(record)
        await self.db.flush()
        self.db.info[OUTBOX_APPENDED_KEY] = True
        logger.debug(
            "Outbox append %s (%s %s/%s)", record.id, event_type, aggregate_type, aggregate_id
        )
        return _outbox_to_result(record)

    def _deliverable_query(self, limit: int):
        return (
            select(OutboxEvent)
            .where(OutboxEvent.status.in_(_DELIVERABLE))
            .order_by(OutboxEvent.created_at, OutboxEvent.id)
            .limit(limit)
        )

    async def list_pending(self, limit: int) -> list[OutboxRecordResult]:
        """PENDING and retryable FAILED records, oldest first."""
        result = await self.db.execute(self._deliverable_query(limit))
        return [_outbox_to_result(e) for e in result.scalars().all()]

    async def claim_batch(self, limit: int) -> list[OutboxRecordResult]:
        """Same selection as list_pending, row-locked with SKIP LOCKED.

        Locks are held until the caller's transaction ends, so concurrent
        relays claim disjoint batches. Dialects without row locks ignore it.
        """
        result = await self.db.execute(
            self._deliverable_query(limit).with_for_update(skip_locked=True)
        )
        return [_outbox_to_result(e) for e in result.scalars().all()]

    async def get(self, record_id: str) -> OutboxRecordResult | None:
        result = await self.db.execute(
            select(OutboxEvent)
            .where(OutboxEvent.id == record_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _outbox_to_result(row) if row else None

    async def mark_published(self, record_id: str, when: datetime) -> bool:
        """PENDING/FAILED -> PUBLISHED. Returns False when already terminal or missing."""
        result = await self.db.execute(
            update(OutboxEvent)
            .where(OutboxEvent.id == record_id, OutboxEvent.status.notin_(_TERMINAL))
            .values(
                status=OutboxStatus.PUBLISHED.value,
                published_at=when,
                last_attempt_at=when,
                error_message=None,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def mark_failed(self, record_id: str, message: str, when: datetime) -> int | None:
        """Increment attempts and record the error. Returns the new attempt count.

        None means the record is missing or already terminal.
        """
        result = await self.db.execute(
            update(OutboxEvent)
            .where(OutboxEvent.id == record_id, OutboxEvent.status.notin_(_TERMINAL))
            .values(
                status=OutboxStatus.FAILED.value,
                attempts=OutboxEvent.attempts + 1,
                last_attempt_at=when,
                error_message=message,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        attempts = await self.db.execute(
            select(OutboxEvent.attempts).where(OutboxEvent.id == record_id)
        )
        return attempts.scalar_one()

    async def mark_dead_lettered(self, record_id: str, message: str, when: datetime) -> bool:
        """FAILED -> DEAD_LETTERED once retries are exhausted. Terminal."""
        result = await self.db.execute(
            update(OutboxEvent)
            .where(OutboxEvent.id == record_id, OutboxEvent.status.notin_(_TERMINAL))
            .values(
                status=OutboxStatus.DEAD_LETTERED.value,
                last_attempt_at=when,
                error_message=message,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def count_by_status(self) -> dict[str, int]:
        result = await self.db.execute(
            select(OutboxEvent.status, func.count()).group_by(OutboxEvent.status)
        )
        counts = {status: 0 for status in OutboxStatus.values()}
        counts.update({status: count for status, count in result.all()})
        return counts
