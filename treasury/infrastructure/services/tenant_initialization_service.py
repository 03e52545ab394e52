"""Tenant RBAC initialization: permission catalog and system roles."""

from __future__ import annotations

import logging
from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession

from treasury.application.dtos.assignment import AssignmentResult
from treasury.application.dtos.permission import PermissionDefinition
from treasury.application.dtos.role import ProvisionedRole
from treasury.application.services.outbox_writer import OutboxWriter
from treasury.application.services.permission_service import PermissionService
from treasury.application.services.role_service import RoleService
from treasury.infrastructure.persistence.repositories import (
    AssignmentRepository,
    OutboxRepository,
    PermissionRepository,
    RolePermissionRepository,
    RoleRepository,
)

logger = logging.getLogger(__name__)

ADMIN_ROLE_CODE = "finance_admin"


class RoleData(TypedDict):
    """Role configuration for default roles."""

    name: str
    description: str
    permissions: list[str]


# (code, name, module, action, resource, description)
SYSTEM_PERMISSIONS: list[tuple[str, str, str, str, str, str]] = [
    ("treasury.payments.create", "Create Payment Intent", "payments", "create", "payments", "Create payment intents"),
    ("treasury.payments.process", "Process Payments", "payments", "process", "payments", "Process payment transactions"),
    ("treasury.payments.refund", "Process Refunds", "payments", "refund", "payments", "Process refunds"),
    ("treasury.payments.approve", "Approve Payments", "payments", "approve", "payments", "Approve payments and refunds"),
    ("treasury.payments.view", "View Payments", "payments", "view", "payments", "View payment records"),
    ("treasury.invoices.create", "Create Invoices", "invoices", "create", "invoices", "Create invoices"),
    ("treasury.invoices.edit", "Edit Invoices", "invoices", "edit", "invoices", "Edit invoices"),
    ("treasury.invoices.approve", "Approve Invoices", "invoices", "approve", "invoices", "Approve invoices"),
    ("treasury.invoices.send", "Send Invoices", "invoices", "send", "invoices", "Send invoices to customers"),
    ("treasury.invoices.view", "View Invoices", "invoices", "view", "invoices", "View invoices"),
    ("treasury.ledger.create", "Create Journal Entries", "ledger", "create", "ledger", "Create journal entries"),
    ("treasury.ledger.approve", "Approve Journal Entries", "ledger", "approve", "ledger", "Approve journal entries"),
    ("treasury.ledger.post", "Post Journal Entries", "ledger", "post", "ledger", "Post journal entries"),
    ("treasury.ledger.reverse", "Reverse Entries", "ledger", "reverse", "ledger", "Reverse journal entries"),
    ("treasury.ledger.view", "View Ledger", "ledger", "view", "ledger", "View ledger entries"),
    ("treasury.banking.reconcile", "Reconcile Accounts", "banking", "reconcile", "banking", "Reconcile bank accounts"),
    ("treasury.banking.import", "Import Bank Statements", "banking", "import", "banking", "Import bank statements"),
    ("treasury.banking.view", "View Bank Accounts", "banking", "view", "banking", "View bank accounts"),
    ("treasury.expenses.create", "Create Expenses", "expenses", "create", "expenses", "Create expenses"),
    ("treasury.expenses.approve", "Approve Expenses", "expenses", "approve", "expenses", "Approve expenses"),
    ("treasury.expenses.view", "View Expenses", "expenses", "view", "expenses", "View expenses"),
    ("treasury.config.view", "View Configuration", "config", "view", "config", "View configuration"),
    ("treasury.config.manage", "Manage Configuration", "config", "manage", "config", "Manage configuration"),
    ("treasury.users.manage", "Manage Users", "users", "manage", "users", "Manage users and roles"),
]

PERMISSION_CATALOG: list[PermissionDefinition] = [
    PermissionDefinition(
        code=code,
        name=name,
        module=module,
        action=action,
        resource=resource,
        description=description,
    )
    for code, name, module, action, resource, description in SYSTEM_PERMISSIONS
]

DEFAULT_ROLES: dict[str, RoleData] = {
    ADMIN_ROLE_CODE: {
        "name": "Finance Administrator",
        "description": "Full access to all financial operations",
        "permissions": [
            "treasury.payments.*",
            "treasury.invoices.*",
            "treasury.ledger.*",
            "treasury.banking.*",
            "treasury.expenses.*",
            "treasury.config.*",
            "treasury.users.manage",
        ],
    },
    "accountant": {
        "name": "Accountant",
        "description": "Can create/edit invoices, bills, journal entries and process payments",
        "permissions": [
            "treasury.payments.create",
            "treasury.payments.process",
            "treasury.payments.refund",
            "treasury.payments.view",
            "treasury.invoices.create",
            "treasury.invoices.edit",
            "treasury.invoices.view",
            "treasury.ledger.create",
            "treasury.ledger.view",
            "treasury.banking.reconcile",
            "treasury.banking.view",
            "treasury.expenses.create",
            "treasury.expenses.view",
        ],
    },
    "cashier": {
        "name": "Cashier",
        "description": "Can process payments and issue receipts",
        "permissions": [
            "treasury.payments.create",
            "treasury.payments.process",
            "treasury.payments.view",
            "treasury.invoices.view",
        ],
    },
    "approver": {
        "name": "Approver",
        "description": "Can approve invoices, bills, expenses and journal entries",
        "permissions": [
            "treasury.payments.approve",
            "treasury.payments.view",
            "treasury.invoices.approve",
            "treasury.invoices.view",
            "treasury.ledger.approve",
            "treasury.ledger.post",
            "treasury.ledger.view",
            "treasury.expenses.approve",
            "treasury.expenses.view",
        ],
    },
    "viewer": {
        "name": "Finance Viewer",
        "description": "Read-only access to financial data",
        "permissions": [
            "treasury.payments.view",
            "treasury.invoices.view",
            "treasury.ledger.view",
            "treasury.banking.view",
            "treasury.expenses.view",
            "treasury.config.view",
        ],
    },
}


class TenantInitializationService:
    """Seeds the global catalog and a tenant's system roles on one session.

    Every step is idempotent; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        permission_repo = PermissionRepository(db)
        self.permission_service = PermissionService(permission_repo)
        self.role_service = RoleService(
            role_repo=RoleRepository(db),
            permission_repo=permission_repo,
            role_permission_repo=RolePermissionRepository(db),
            assignment_repo=AssignmentRepository(db),
            outbox_writer=OutboxWriter(OutboxRepository(db)),
        )

    async def seed_permission_catalog(self) -> int:
        """Insert missing catalog entries; return how many were created."""
        created = await self.permission_service.ensure_catalog(PERMISSION_CATALOG)
        logger.info(
            "Permission catalog seeded: %d created, %d total",
            created,
            len(PERMISSION_CATALOG),
        )
        return created

    async def initialize_tenant(
        self, tenant_id: str, *, actor_id: str | None = None
    ) -> dict[str, ProvisionedRole]:
        """Seed the catalog, then provision every default role as a system role."""
        await self.seed_permission_catalog()
        provisioned: dict[str, ProvisionedRole] = {}
        for role_code, role_data in DEFAULT_ROLES.items():
            provisioned[role_code] = await self.role_service.provision_role(
                tenant_id,
                role_code,
                role_data["name"],
                role_data["permissions"],
                description=role_data["description"],
                is_system=True,
                actor_id=actor_id,
                reuse_existing=True,
            )
        logger.info("Tenant %s initialized with %d system roles", tenant_id, len(provisioned))
        return provisioned

    async def assign_admin_role(
        self, tenant_id: str, admin_user_id: str, *, assigned_by: str | None = None
    ) -> AssignmentResult:
        """Assign the finance admin role to a user. Call after initialize_tenant."""
        return await self.role_service.assign_role(
            tenant_id,
            admin_user_id,
            ADMIN_ROLE_CODE,
            assigned_by=assigned_by or admin_user_id,
        )
