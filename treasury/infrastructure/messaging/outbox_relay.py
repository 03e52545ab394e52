"""Outbox relay: moves committed outbox records onto the message bus.

Each cycle runs in one transaction: claim a batch (FOR UPDATE SKIP LOCKED),
publish every record, record the outcome per record, commit. Delivery is
at-least-once; a crash between publish and commit republishes the batch.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session

from treasury.application.dtos.outbox import OutboxRecordResult, RelayCycleResult
from treasury.application.interfaces.services import IMessageBus
from treasury.core.config import Settings, get_settings
from treasury.infrastructure.persistence.repositories.outbox_repo import (
    OUTBOX_APPENDED_KEY,
    OutboxRepository,
)
from treasury.shared.telemetry.tracing import add_span_attributes, traced
from treasury.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def build_envelope(record: OutboxRecordResult) -> bytes:
    """Serialize the wire envelope for one outbox record."""
    return json.dumps(
        {
            "id": record.id,
            "event_type": record.event_type,
            "aggregate_type": record.aggregate_type,
            "aggregate_id": record.aggregate_id,
            "tenant_id": record.tenant_id,
            "payload": record.payload,
            "created_at": record.created_at.isoformat(),
        },
        separators=(",", ":"),
    ).encode()


def build_dead_letter(record: OutboxRecordResult, error: str, attempts: int) -> bytes:
    envelope: dict[str, Any] = json.loads(build_envelope(record))
    envelope["error"] = error
    envelope["attempts"] = attempts
    return json.dumps(envelope, separators=(",", ":")).encode()


class OutboxRelay:
    """Background publisher for the transactional outbox."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        bus: IMessageBus,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        settings = settings or get_settings()
        self._session_factory = session_factory
        self._bus = bus
        self._clock = clock
        self.domain = settings.event_domain
        self.batch_size = settings.outbox_batch_size
        self.poll_interval = settings.outbox_poll_interval_seconds
        self.max_attempts = settings.outbox_max_attempts
        self.dead_letter_topic = settings.outbox_dead_letter_stream
        self._wakeup = asyncio.Event()
        self._commit_listener: Callable[[Session], None] | None = None
        self._rollback_listener: Callable[[Session], None] | None = None

    def topic_for(self, event_type: str) -> str:
        return f"{self.domain}.{event_type}"

    def notify(self) -> None:
        """Wake the loop before the poll interval elapses."""
        self._wakeup.set()

    def attach_commit_notifier(self) -> None:
        """Call notify() after any session commit that appended an outbox record."""
        if self._commit_listener is not None:
            return

        def _after_commit(session: Session) -> None:
            if session.info.pop(OUTBOX_APPENDED_KEY, False):
                self.notify()

        def _after_rollback(session: Session) -> None:
            session.info.pop(OUTBOX_APPENDED_KEY, None)

        event.listen(Session, "after_commit", _after_commit)
        event.listen(Session, "after_rollback", _after_rollback)
        self._commit_listener = _after_commit
        self._rollback_listener = _after_rollback

    def detach_commit_notifier(self) -> None:
        if self._commit_listener is None:
            return
        event.remove(Session, "after_commit", self._commit_listener)
        event.remove(Session, "after_rollback", self._rollback_listener)
        self._commit_listener = None
        self._rollback_listener = None

    @traced("outbox.relay_cycle")
    async def run_once(self) -> RelayCycleResult:
        """Run one claim/publish/mark cycle and commit it.

        Publish errors are recorded on the record; errors reaching the store
        propagate to the caller.
        """
        result = RelayCycleResult()
        async with self._session_factory() as session:
            async with session.begin():
                repo = OutboxRepository(session)
                records = await repo.claim_batch(self.batch_size)
                result.claimed = len(records)
                held: set[tuple[str, str]] = set()
                for record in records:
                    aggregate = (record.aggregate_type, record.aggregate_id)
                    if aggregate in held:
                        # An earlier record of this aggregate is still undelivered.
                        result.deferred += 1
                        continue
                    if not await self._deliver(repo, record, result):
                        held.add(aggregate)
        add_span_attributes(
            claimed=result.claimed,
            published=result.published,
            failed=result.failed,
            dead_lettered=result.dead_lettered,
            deferred=result.deferred,
        )
        return result

    async def _deliver(
        self, repo: OutboxRepository, record: OutboxRecordResult, result: RelayCycleResult
    ) -> bool:
        """Publish one record and record the outcome; True once it is no longer pending."""
        if record.attempts >= self.max_attempts:
            return await self._dead_letter(
                repo, record, record.error_message or "retries exhausted", record.attempts, result
            )
        try:
            await self._bus.publish(self.topic_for(record.event_type), build_envelope(record))
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            attempts = await repo.mark_failed(record.id, error, self._clock())
            if attempts is None:
                # Already terminal elsewhere.
                return True
            if attempts >= self.max_attempts:
                return await self._dead_letter(repo, record, error, attempts, result)
            result.failed += 1
            result.failed_ids.append(record.id)
            logger.warning(
                "Outbox publish failed for %s (%s), attempt %d/%d: %s",
                record.id,
                record.event_type,
                attempts,
                self.max_attempts,
                error,
            )
            return False
        if await repo.mark_published(record.id, self._clock()):
            result.published += 1
        return True

    async def _dead_letter(
        self,
        repo: OutboxRepository,
        record: OutboxRecordResult,
        error: str,
        attempts: int,
        result: RelayCycleResult,
    ) -> bool:
        try:
            await self._bus.publish(
                self.dead_letter_topic, build_dead_letter(record, error, attempts)
            )
        except Exception as e:
            # Stays FAILED; the next cycle retries the dead-letter publish.
            result.failed += 1
            result.failed_ids.append(record.id)
            logger.error(
                "Dead-letter publish failed for %s after %d attempts: %s: %s",
                record.id,
                attempts,
                type(e).__name__,
                e,
            )
            return False
        if await repo.mark_dead_lettered(record.id, error, self._clock()):
            result.dead_lettered += 1
            logger.error(
                "Outbox record %s (%s) dead-lettered to %s after %d attempts: %s",
                record.id,
                record.event_type,
                self.dead_letter_topic,
                attempts,
                error,
            )
        return True

    async def run(self, stop_event: asyncio.Event) -> None:
        """Loop until stop_event is set: run a cycle, then wait for the poll interval or notify()."""
        logger.info(
            "Outbox relay started (batch=%d, interval=%.1fs, max_attempts=%d)",
            self.batch_size,
            self.poll_interval,
            self.max_attempts,
        )
        while not stop_event.is_set():
            drained = True
            try:
                result = await self.run_once()
                if result.claimed:
                    logger.info(
                        "Outbox relay cycle: claimed=%d published=%d failed=%d dead_lettered=%d",
                        result.claimed,
                        result.published,
                        result.failed,
                        result.dead_lettered,
                    )
                drained = result.claimed < self.batch_size or result.published == 0
            except Exception:
                logger.exception("Outbox relay cycle failed")
            if drained:
                await self._wait(stop_event)
        logger.info("Outbox relay stopped")

    async def _wait(self, stop_event: asyncio.Event) -> None:
        waiters = {
            asyncio.ensure_future(self._wakeup.wait()),
            asyncio.ensure_future(stop_event.wait()),
        }
        try:
            await asyncio.wait(
                waiters, timeout=self.poll_interval, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for waiter in waiters:
                waiter.cancel()
            self._wakeup.clear()
