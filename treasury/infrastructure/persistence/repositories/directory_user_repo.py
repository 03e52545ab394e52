"""DirectoryUser repository: shadow rows keyed by (tenant_id, external_id)."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.domain.enums import DirectoryUserStatus, SyncStatus
from treasury.infrastructure.persistence.models.directory_user import DirectoryUser
from treasury.infrastructure.persistence.repositories.base import BaseRepository
from treasury.shared.utils.datetime import utc_now


class DirectoryUserRepository(BaseRepository[DirectoryUser]):
    """Directory shadow. Entity getters return ORM so the sync service can update in place."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, DirectoryUser)

    async def get_entity_by_external_id(
        self, tenant_id: str, external_id: str
    ) -> DirectoryUser | None:
        result = await self.db.execute(
            select(DirectoryUser).where(
                DirectoryUser.tenant_id == tenant_id,
                DirectoryUser.external_id == external_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_entity_by_id_and_tenant(
        self, user_id: str, tenant_id: str
    ) -> DirectoryUser | None:
        result = await self.db.execute(
            select(DirectoryUser).where(
                DirectoryUser.id == user_id,
                DirectoryUser.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def insert_if_absent(
        self,
        tenant_id: str,
        external_id: str,
        email: str,
        synced_at: datetime,
    ) -> DirectoryUser | None:
        """Insert a synced, active row. Return None if (tenant, external_id) already exists.

        The insert runs in a savepoint so a unique violation from a
        concurrent sync leaves the caller's transaction usable.
        """
        user = DirectoryUser(
            tenant_id=tenant_id,
            external_id=external_id,
            email=email,
            status=DirectoryUserStatus.ACTIVE.value,
            sync_status=SyncStatus.SYNCED.value,
            last_sync_at=synced_at,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(user)
                await self.db.flush()
        except IntegrityError:
            return None
        return user

    async def mark_synced(
        self, user: DirectoryUser, email: str, synced_at: datetime
    ) -> DirectoryUser:
        user.email = email
        user.sync_status = SyncStatus.SYNCED.value
        user.last_sync_at = synced_at
        user.updated_at = utc_now()
        await self.db.flush()
        return user

    async def set_status(self, user: DirectoryUser, status: DirectoryUserStatus) -> DirectoryUser:
        user.status = status.value
        user.updated_at = utc_now()
        await self.db.flush()
        return user
