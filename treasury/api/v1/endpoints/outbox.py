"""Outbox diagnostics API."""

from typing import Annotated

from fastapi import APIRouter, Depends

from treasury.api.v1.dependencies import get_outbox_repo, require_permission
from treasury.infrastructure.persistence.repositories.outbox_repo import OutboxRepository
from treasury.schemas.outbox import OutboxStatusResponse

router = APIRouter()


@router.get("/status", response_model=OutboxStatusResponse)
async def outbox_status(
    outbox_repo: Annotated[OutboxRepository, Depends(get_outbox_repo)],
    _: Annotated[object, Depends(require_permission("treasury.config.view"))] = None,
):
    """Count outbox records per status across all tenants."""
    counts = await outbox_repo.count_by_status()
    return OutboxStatusResponse(**{status.lower(): count for status, count in counts.items()})
