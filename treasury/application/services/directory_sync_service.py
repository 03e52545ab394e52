"""Directory sync service: idempotent upsert of identity-provider users into the shadow.

The same sync_user path serves direct API calls and inbound identity events.
No outbound event is emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from treasury.application.dtos.directory_user import DirectoryUserResult
from treasury.application.interfaces.repositories import IDirectoryUserRepository
from treasury.domain.enums import DirectoryUserStatus
from treasury.domain.exceptions import ResourceNotFoundException, ValidationException
from treasury.shared.telemetry.tracing import traced
from treasury.shared.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class DirectorySyncService:
    """Keeps directory_users consistent with the identity provider.

    Conflicting updates resolve by timestamp: an update whose occurred_at is
    older than the row's last_sync_at is acknowledged but not applied.
    """

    def __init__(
        self,
        directory_user_repo: IDirectoryUserRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = directory_user_repo
        self._clock = clock

    @traced("directory.sync_user")
    async def sync_user(
        self,
        tenant_id: str,
        external_id: str,
        email: str,
        *,
        occurred_at: datetime | None = None,
    ) -> DirectoryUserResult:
        """Create or refresh the shadow row for (tenant_id, external_id).

        Calling twice with the same arguments yields one row.

        Raises:
            ValidationException: blank tenant_id, external_id or email.
        """
        for field_name, value in (
            ("tenant_id", tenant_id),
            ("external_id", external_id),
            ("email", email),
        ):
            if not value or not value.strip():
                raise ValidationException(f"{field_name} is required", field=field_name)
        synced_at = ensure_utc(occurred_at) or self._clock()

        user = await self._repo.get_entity_by_external_id(tenant_id, external_id)
        if user is None:
            user = await self._repo.insert_if_absent(tenant_id, external_id, email, synced_at)
            if user is not None:
                logger.info("Directory user created: %s/%s", tenant_id, external_id)
                return DirectoryUserResult.from_entity(user)
            # Lost an insert race; the winning row is updated below.
            user = await self._repo.get_entity_by_external_id(tenant_id, external_id)
            if user is None:
                raise ResourceNotFoundException("directory_user", f"{tenant_id}:{external_id}")

        last_sync_at = ensure_utc(user.last_sync_at)
        if last_sync_at is not None and synced_at < last_sync_at:
            logger.info(
                "Skipping stale sync for %s/%s (event %s older than %s)",
                tenant_id,
                external_id,
                synced_at.isoformat(),
                last_sync_at.isoformat(),
            )
            return DirectoryUserResult.from_entity(user)

        user = await self._repo.mark_synced(user, email, synced_at)
        logger.debug("Directory user refreshed: %s/%s", tenant_id, external_id)
        return DirectoryUserResult.from_entity(user)

    async def get_user(self, tenant_id: str, user_id: str) -> DirectoryUserResult:
        """Return the shadow row by id. Raises ResourceNotFoundException."""
        user = await self._repo.get_entity_by_id_and_tenant(user_id, tenant_id)
        if user is None:
            raise ResourceNotFoundException("directory_user", user_id)
        return DirectoryUserResult.from_entity(user)

    async def get_by_external_id(self, tenant_id: str, external_id: str) -> DirectoryUserResult:
        user = await self._repo.get_entity_by_external_id(tenant_id, external_id)
        if user is None:
            raise ResourceNotFoundException("directory_user", external_id)
        return DirectoryUserResult.from_entity(user)

    async def set_status(
        self, tenant_id: str, user_id: str, status: DirectoryUserStatus | str
    ) -> DirectoryUserResult:
        """Change lifecycle status (active, inactive, suspended)."""
        try:
            new_status = DirectoryUserStatus(status)
        except ValueError as e:
            raise ValidationException(
                f"status must be one of {DirectoryUserStatus.values()}", field="status"
            ) from e
        user = await self._repo.get_entity_by_id_and_tenant(user_id, tenant_id)
        if user is None:
            raise ResourceNotFoundException("directory_user", user_id)
        user = await self._repo.set_status(user, new_status)
        logger.info("Directory user %s status -> %s", user_id, new_status.value)
        return DirectoryUserResult.from_entity(user)
