"""Seed RBAC (permission catalog and system roles) for a tenant.

Usage:
    python -m scripts.seed_rbac <tenant_id> [admin_user_id]
Seeds the global catalog, provisions the system roles for the tenant and,
when admin_user_id is given, assigns it finance_admin. Safe to re-run.
"""

import asyncio
import sys

from treasury.core.config import get_settings
from treasury.domain.exceptions import DuplicateAssignmentException
from treasury.infrastructure.persistence.database import dispose_engine, get_session_factory
from treasury.infrastructure.services.tenant_initialization_service import (
    TenantInitializationService,
)
from treasury.shared.telemetry.logging import setup_logging


async def main() -> None:
    """Seed RBAC for the given tenant."""
    if len(sys.argv) < 2:
        print(
            "Usage: python -m scripts.seed_rbac <tenant_id> [admin_user_id]",
            file=sys.stderr,
        )
        sys.exit(1)
    tenant_id = sys.argv[1]
    admin_user_id = sys.argv[2] if len(sys.argv) > 2 else None

    get_settings()
    setup_logging()
    session_factory = get_session_factory()

    try:
        async with session_factory() as session:
            async with session.begin():
                init_svc = TenantInitializationService(session)
                provisioned = await init_svc.initialize_tenant(tenant_id)
                for role_code, result in provisioned.items():
                    print(
                        f"  {role_code}: {len(result.granted)} granted, "
                        f"{len(result.already_granted)} already held"
                    )
        if admin_user_id:
            async with session_factory() as session:
                async with session.begin():
                    init_svc = TenantInitializationService(session)
                    try:
                        await init_svc.assign_admin_role(tenant_id, admin_user_id)
                        print(f"Assigned finance_admin to {admin_user_id}")
                    except DuplicateAssignmentException:
                        print(f"{admin_user_id} already holds finance_admin")
        print(f"Seeded RBAC for tenant {tenant_id}")
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
