"""OutboxEvent ORM model: durable queue of domain events awaiting publication."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from treasury.infrastructure.persistence.database import Base
from treasury.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    TenantMixin,
)
from treasury.shared.enums import OutboxStatus


class OutboxEvent(CuidMixin, TenantMixin, CreatedAtMixin, Base):
    """Outbox record. Table: outbox_events.

    Inserted only inside the transaction of the mutation it describes.
    Never deleted; status moves PENDING/FAILED -> PUBLISHED or DEAD_LETTERED.
    """

    __tablename__ = "outbox_events"

    aggregate_type: Mapped[str] = mapped_column(String(100), nullable=False)
    aggregate_id: Mapped[str] = mapped_column(String, nullable=False)
    event_type: Mapped[str] = mapped_column(String(150), nullable=False)
    payload: Mapped[Any] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OutboxStatus.PENDING.value
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_outbox_events_status_created", "status", "created_at"),
        Index("ix_outbox_events_aggregate", "aggregate_type", "aggregate_id"),
        Index("ix_outbox_events_event_type", "event_type"),
        CheckConstraint(
            "status IN ('PENDING', 'PUBLISHED', 'FAILED', 'DEAD_LETTERED')",
            name="ck_outbox_events_status",
        ),
        CheckConstraint("attempts >= 0", name="ck_outbox_events_attempts"),
    )
