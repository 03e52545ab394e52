"""Directory API: sync identity-provider users into the tenant's shadow."""

from typing import Annotated

from fastapi import APIRouter, Depends

from treasury.api.v1.dependencies import (
    get_directory_sync_service,
    get_tenant_id,
    require_permission,
)
from treasury.application.services.directory_sync_service import DirectorySyncService
from treasury.schemas.directory import (
    DirectoryUserResponse,
    DirectoryUserStatusUpdate,
    DirectoryUserSyncRequest,
)

router = APIRouter()

MANAGE_USERS = "treasury.users.manage"


@router.put("/users", response_model=DirectoryUserResponse)
async def sync_user(
    body: DirectoryUserSyncRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    sync_svc: Annotated[DirectorySyncService, Depends(get_directory_sync_service)],
    _: Annotated[object, Depends(require_permission(MANAGE_USERS))] = None,
):
    """Create or refresh the shadow row for an identity-provider user (idempotent)."""
    user = await sync_svc.sync_user(
        tenant_id, body.external_id, str(body.email), occurred_at=body.occurred_at
    )
    return DirectoryUserResponse.model_validate(user)


@router.get("/users/{user_id}", response_model=DirectoryUserResponse)
async def get_user(
    user_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    sync_svc: Annotated[DirectorySyncService, Depends(get_directory_sync_service)],
    _: Annotated[object, Depends(require_permission(MANAGE_USERS))] = None,
):
    user = await sync_svc.get_user(tenant_id, user_id)
    return DirectoryUserResponse.model_validate(user)


@router.patch("/users/{user_id}/status", response_model=DirectoryUserResponse)
async def set_user_status(
    user_id: str,
    body: DirectoryUserStatusUpdate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    sync_svc: Annotated[DirectorySyncService, Depends(get_directory_sync_service)],
    _: Annotated[object, Depends(require_permission(MANAGE_USERS))] = None,
):
    """Activate, deactivate or suspend a directory user."""
    user = await sync_svc.set_status(tenant_id, user_id, body.status)
    return DirectoryUserResponse.model_validate(user)
