"""Permission catalog API: list and register codes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from treasury.api.v1.dependencies import (
    get_permission_repo,
    get_permission_service,
    require_permission,
)
from treasury.application.dtos.permission import PermissionDefinition
from treasury.application.services.permission_service import PermissionService
from treasury.infrastructure.persistence.repositories.permission_repo import (
    PermissionRepository,
)
from treasury.schemas.permission import PermissionCreate, PermissionResponse

router = APIRouter()


@router.get("", response_model=list[PermissionResponse])
async def list_permissions(
    permission_repo: Annotated[PermissionRepository, Depends(get_permission_repo)],
    _: Annotated[object, Depends(require_permission("treasury.config.view"))] = None,
):
    """List the global permission catalog, ordered by code."""
    permissions = await permission_repo.list_all()
    return [PermissionResponse.model_validate(p) for p in permissions]


@router.post("", response_model=PermissionResponse, status_code=201)
async def create_permission(
    body: PermissionCreate,
    permission_svc: Annotated[PermissionService, Depends(get_permission_service)],
    _: Annotated[object, Depends(require_permission("treasury.config.manage"))] = None,
):
    """Register a catalog code. Existing roles do not gain it, even through wildcards."""
    created = await permission_svc.create_permission(
        PermissionDefinition(**body.model_dump())
    )
    return PermissionResponse.model_validate(created)
