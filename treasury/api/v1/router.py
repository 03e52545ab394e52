"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from treasury.api.v1.dependencies (no manual repo/service construction).
"""

from fastapi import APIRouter

from treasury.api.v1.endpoints import (
    authorization,
    directory,
    health,
    outbox,
    permissions,
    roles,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    authorization.router, prefix="/authorization", tags=["authorization"]
)
api_router.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
api_router.include_router(roles.router, prefix="/roles", tags=["roles"])
api_router.include_router(directory.router, prefix="/directory", tags=["directory"])
api_router.include_router(outbox.router, prefix="/outbox", tags=["outbox"])
