"""Assignment ORM model: a role granted to a user within a tenant."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from treasury.infrastructure.persistence.database import Base
from treasury.infrastructure.persistence.models.mixins import CuidMixin, TenantMixin
from treasury.shared.utils.datetime import utc_now


class Assignment(CuidMixin, TenantMixin, Base):
    """User-role link. Table: assignments. Unique (tenant_id, user_id, role_id).

    user_id is the identity provider's user id (the principal's subject),
    the same value stored as directory_users.external_id. A row with
    expires_at in the past is kept but never resolves.
    """

    __tablename__ = "assignments"

    user_id: Mapped[str] = mapped_column(String, nullable=False)
    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )
    assigned_by: Mapped[str | None] = mapped_column(String, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "user_id", "role_id", name="uq_assignments_tenant_user_role"
        ),
        Index("ix_assignments_lookup", "tenant_id", "user_id"),
    )
