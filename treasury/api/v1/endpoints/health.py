"""Health check endpoints for liveness and readiness checks."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.api.v1.dependencies import get_db
from treasury.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReadinessResponse | JSONResponse:
    """Return 200 when the database answers; 503 otherwise.

    A disconnected message bus does not fail readiness: writes still land
    in the outbox and are published once the bus is back.
    """
    try:
        await db.execute(text("SELECT 1"))
    except (DBAPIError, OSError) as e:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(
                status="not_ready",
                message=f"database unreachable: {type(e).__name__}",
            ).model_dump(),
        )
    bus = getattr(request.app.state, "bus", None)
    if bus is None:
        bus_status = "disabled"
    elif bus.is_available():
        bus_status = "ok"
    else:
        bus_status = "unavailable"
    return ReadinessResponse(message_bus=bus_status)
