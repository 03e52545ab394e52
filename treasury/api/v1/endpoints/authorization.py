"""Authorization API: the caller's roles and permissions, and ad-hoc checks."""

from typing import Annotated

from fastapi import APIRouter, Depends

from treasury.api.v1.dependencies import get_authorization_service, get_principal, get_tenant_id
from treasury.application.services.authorization_service import AuthorizationService
from treasury.domain.value_objects import Principal
from treasury.schemas.authorization import (
    AccessResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
)

router = APIRouter()


@router.get("/me", response_model=AccessResponse)
async def get_my_access(
    principal: Annotated[Principal, Depends(get_principal)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    auth_svc: Annotated[AuthorizationService, Depends(get_authorization_service)],
):
    """List the roles and permission codes the caller holds right now."""
    roles = await auth_svc.get_user_roles(tenant_id, principal.user_id)
    permissions = await auth_svc.get_user_permissions(tenant_id, principal.user_id)
    return AccessResponse(
        tenant_id=tenant_id,
        user_id=principal.user_id,
        roles=sorted(roles),
        permissions=sorted(permissions),
    )


@router.post("/check", response_model=PermissionCheckResponse)
async def check_my_permission(
    body: PermissionCheckRequest,
    principal: Annotated[Principal, Depends(get_principal)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    auth_svc: Annotated[AuthorizationService, Depends(get_authorization_service)],
):
    """Answer whether the caller holds a permission (exact code match)."""
    allowed = await auth_svc.check_permission(
        tenant_id, principal.user_id, body.permission, scopes=principal.scopes
    )
    return PermissionCheckResponse(permission=body.permission, allowed=allowed)
