"""DirectoryUser ORM model: local shadow of identity-provider users."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from treasury.domain.enums import DirectoryUserStatus, SyncStatus
from treasury.infrastructure.persistence.database import Base
from treasury.infrastructure.persistence.models.mixins import MultiTenantModel


class DirectoryUser(MultiTenantModel, Base):
    """Directory user. Table: directory_users. Unique (tenant_id, external_id)."""

    __tablename__ = "directory_users"

    external_id: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DirectoryUserStatus.ACTIVE.value
    )
    sync_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SyncStatus.SYNCED.value
    )
    last_sync_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "external_id", name="uq_directory_users_tenant_external"
        ),
        Index("ix_directory_users_status", "status"),
        Index("ix_directory_users_sync_status", "sync_status"),
        CheckConstraint(
            "status IN ('active', 'inactive', 'suspended')",
            name="ck_directory_users_status",
        ),
        CheckConstraint(
            "sync_status IN ('synced', 'pending', 'failed')",
            name="ck_directory_users_sync_status",
        ),
    )
