"""Role ORM model. Tenant-scoped roles (finance_admin, accountant, viewer, ...)."""

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from treasury.infrastructure.persistence.database import Base
from treasury.infrastructure.persistence.models.mixins import MultiTenantModel


class Role(MultiTenantModel, Base):
    """Role. Table: roles. Unique (tenant_id, code). System roles are not deletable."""

    __tablename__ = "roles"

    code: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (UniqueConstraint("tenant_id", "code", name="uq_roles_tenant_code"),)
