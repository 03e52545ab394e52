"""DTOs exchanged with the message bus (no dependency on a broker client)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BusMessage:
    """One delivery of a message from a durable subscription.

    delivery_count is 1 on first delivery and grows on each redelivery.
    """

    id: str
    topic: str
    data: bytes
    delivery_count: int = 1
