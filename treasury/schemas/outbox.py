"""Outbox diagnostics API schemas."""

from pydantic import BaseModel


class OutboxStatusResponse(BaseModel):
    """Record counts per outbox status."""

    pending: int = 0
    published: int = 0
    failed: int = 0
    dead_lettered: int = 0
