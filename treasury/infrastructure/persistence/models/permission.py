"""Permission catalog and RolePermission grant ORM models (RBAC)."""

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from treasury.infrastructure.persistence.database import Base
from treasury.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    TenantMixin,
)


class Permission(CuidMixin, CreatedAtMixin, Base):
    """Catalog permission. Table: permissions. Global (no tenant), unique code.

    code is dotted module.action (e.g. treasury.payments.create). Rows are
    never updated once a role references them.
    """

    __tablename__ = "permissions"

    code: Mapped[str] = mapped_column(String(150), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    module: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    resource: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("code", name="uq_permissions_code"),
        Index("ix_permissions_module_action", "module", "action"),
    )


class RolePermission(CuidMixin, TenantMixin, Base):
    """Materialised role-permission grant. Table: role_permissions."""

    __tablename__ = "role_permissions"

    role_id: Mapped[str] = mapped_column(
        String, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[str] = mapped_column(
        String, ForeignKey("permissions.id", ondelete="RESTRICT"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        Index("ix_role_permissions_lookup", "tenant_id", "role_id"),
    )
