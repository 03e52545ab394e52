"""Shared utilities: datetime and identifier generators."""

from treasury.shared.utils.datetime import ensure_utc, utc_now
from treasury.shared.utils.generators import generate_consumer_name, generate_cuid

__all__ = [
    "generate_cuid",
    "generate_consumer_name",
    "utc_now",
    "ensure_utc",
]
