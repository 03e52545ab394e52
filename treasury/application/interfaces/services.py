"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services and external
collaborators (DIP).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from treasury.application.dtos.messaging import BusMessage


class IPermissionResolver(Protocol):
    """Protocol for resolving a user's live permissions and roles (used by AuthorizationService)."""

    async def get_user_permissions(self, user_id: str, tenant_id: str) -> set[str]:
        """Return permission codes granted through non-expired assignments."""

    async def get_user_roles(self, user_id: str, tenant_id: str) -> set[str]:
        """Return role codes of non-expired assignments."""

    async def has_permission(self, user_id: str, tenant_id: str, code: str) -> bool:
        """Exact match; wildcards are never interpreted here."""

    async def has_role(self, user_id: str, tenant_id: str, role_code: str) -> bool: ...


class ISubscription(Protocol):
    """A durable subscription. Unacknowledged messages are redelivered."""

    topic: str
    durable_name: str

    async def fetch(self, max_messages: int, timeout_ms: int) -> list[BusMessage]:
        """Return up to max_messages deliveries, waiting at most timeout_ms."""

    async def ack(self, message: BusMessage) -> None: ...

    async def nak(self, message: BusMessage) -> None:
        """Reject the delivery; the message becomes eligible for redelivery."""

    async def unsubscribe(self) -> None:
        """Stop receiving. The durable position is kept for the next subscribe."""


class IMessageBus(Protocol):
    """Publish/subscribe message bus (durable, at-least-once)."""

    async def publish(self, topic: str, message: bytes) -> str:
        """Publish and return the broker message id.

        Raises TransientPublishFailure when the broker cannot accept it.
        """

    async def subscribe(self, topic: str, durable_name: str) -> ISubscription: ...
