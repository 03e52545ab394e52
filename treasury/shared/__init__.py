"""Shared utilities: enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from treasury.shared.enums import OutboxStatus
from treasury.shared.utils import (
    ensure_utc,
    generate_consumer_name,
    generate_cuid,
    utc_now,
)

__all__ = [
    "OutboxStatus",
    "generate_cuid",
    "generate_consumer_name",
    "utc_now",
    "ensure_utc",
]
