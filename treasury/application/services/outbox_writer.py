"""Outbox writer: records domain mutations as outbox events in the caller's transaction."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import JsonValue, TypeAdapter, ValidationError

from treasury.application.dtos.outbox import OutboxRecordResult
from treasury.application.interfaces.repositories import IOutboxRepository
from treasury.domain.exceptions import ValidationException

logger = logging.getLogger(__name__)

_PAYLOAD_ADAPTER: TypeAdapter[JsonValue] = TypeAdapter(JsonValue)


def validate_payload(payload: Any) -> JsonValue:
    """Return payload as a JSON value (null, bool, number, string, array, object).

    Raises ValidationException for anything else (e.g. datetimes, arbitrary objects).
    """
    try:
        return _PAYLOAD_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise ValidationException(
            f"Outbox payload is not a JSON value: {e.errors()[0]['msg']}",
            field="payload",
        ) from e


class OutboxWriter:
    """Builds outbox records for domain mutations.

    Never opens or commits a transaction: the record commits or rolls back
    together with the mutation it describes.
    """

    def __init__(self, outbox_repo: IOutboxRepository) -> None:
        self._repo = outbox_repo

    async def record(
        self,
        tenant_id: str,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: Any,
    ) -> OutboxRecordResult:
        """Append one PENDING record describing a mutation.

        Raises:
            ValidationException: blank identifiers or a non-JSON payload.
            OutboxTransactionRequiredException: no open transaction on the session.
        """
        for field_name, value in (
            ("tenant_id", tenant_id),
            ("aggregate_type", aggregate_type),
            ("aggregate_id", aggregate_id),
            ("event_type", event_type),
        ):
            if not value:
                raise ValidationException(f"{field_name} is required", field=field_name)
        record = await self._repo.append(
            tenant_id=tenant_id,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            payload=validate_payload(payload),
        )
        logger.info(
            "Queued %s for %s %s (tenant=%s)", event_type, aggregate_type, aggregate_id, tenant_id
        )
        return record
