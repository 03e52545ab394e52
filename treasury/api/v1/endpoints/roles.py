"""Roles API: provision, list and delete roles; assign and revoke them (tenant-scoped)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from treasury.api.v1.dependencies import (
    get_role_repo,
    get_role_service,
    get_tenant_id,
    require_permission,
)
from treasury.application.services.role_service import RoleService
from treasury.domain.value_objects import Principal
from treasury.infrastructure.persistence.repositories.role_repo import RoleRepository
from treasury.schemas.role import (
    AssignmentCreate,
    AssignmentResponse,
    ProvisionedRoleResponse,
    RoleProvisionRequest,
    RoleResponse,
)

router = APIRouter()

MANAGE_USERS = "treasury.users.manage"


@router.get("", response_model=list[RoleResponse])
async def list_roles(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    role_repo: Annotated[RoleRepository, Depends(get_role_repo)],
    _: Annotated[object, Depends(require_permission(MANAGE_USERS))] = None,
):
    """List roles defined in the caller's tenant."""
    roles = await role_repo.get_by_tenant(tenant_id)
    return [RoleResponse.model_validate(r) for r in roles]


@router.post("", response_model=ProvisionedRoleResponse, status_code=201)
async def provision_role(
    body: RoleProvisionRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    principal: Annotated[Principal, Depends(require_permission(MANAGE_USERS))],
    role_svc: Annotated[RoleService, Depends(get_role_service)],
):
    """Create a custom role; wildcard patterns are expanded against today's catalog.

    A code already used in the tenant (system roles included) is 409.
    """
    provisioned = await role_svc.provision_role(
        tenant_id,
        body.code,
        body.name,
        body.permissions,
        description=body.description,
        actor_id=principal.user_id,
    )
    return ProvisionedRoleResponse(
        role=RoleResponse.model_validate(provisioned.role),
        granted=list(provisioned.granted),
        already_granted=list(provisioned.already_granted),
    )


@router.delete("/{role_code}", status_code=204)
async def delete_role(
    role_code: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    principal: Annotated[Principal, Depends(require_permission(MANAGE_USERS))],
    role_svc: Annotated[RoleService, Depends(get_role_service)],
) -> Response:
    """Delete a custom role. System roles cannot be deleted (409)."""
    await role_svc.delete_role(tenant_id, role_code, deleted_by=principal.user_id)
    return Response(status_code=204)


@router.post(
    "/{role_code}/assignments", response_model=AssignmentResponse, status_code=201
)
async def assign_role(
    role_code: str,
    body: AssignmentCreate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    principal: Annotated[Principal, Depends(require_permission(MANAGE_USERS))],
    role_svc: Annotated[RoleService, Depends(get_role_service)],
):
    """Assign a role to a user, optionally until expires_at."""
    assignment = await role_svc.assign_role(
        tenant_id,
        body.user_id,
        role_code,
        assigned_by=principal.user_id,
        expires_at=body.expires_at,
    )
    return AssignmentResponse.model_validate(assignment)


@router.delete("/{role_code}/assignments/{user_id}", status_code=204)
async def revoke_role(
    role_code: str,
    user_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    principal: Annotated[Principal, Depends(require_permission(MANAGE_USERS))],
    role_svc: Annotated[RoleService, Depends(get_role_service)],
) -> Response:
    """Remove a role from a user."""
    await role_svc.revoke_role(tenant_id, user_id, role_code, revoked_by=principal.user_id)
    return Response(status_code=204)
