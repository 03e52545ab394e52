"""Unit tests for decoding inbound identity events."""

import json
from datetime import UTC, datetime

import pytest

from treasury.application.dtos.messaging import BusMessage
from treasury.domain.exceptions import PoisonMessageException
from treasury.infrastructure.messaging.identity_consumer import parse_identity_event


def _message(body: object, raw: bytes | None = None) -> BusMessage:
    data = raw if raw is not None else json.dumps(body).encode()
    return BusMessage(id="1-0", topic="auth.user.created", data=data)


def test_created_event() -> None:
    event = parse_identity_event(
        _message(
            {
                "user_id": "idp-42",
                "tenant_id": "t1",
                "email": "ada@example.com",
                "created_at": "2026-02-01T10:00:00Z",
                "source": "signup",
            }
        )
    )
    assert event.user_id == "idp-42"
    assert event.event_time == datetime(2026, 2, 1, 10, 0, tzinfo=UTC)


def test_occurred_at_wins_over_updated_at() -> None:
    event = parse_identity_event(
        _message(
            {
                "user_id": "idp-42",
                "tenant_id": "t1",
                "email": "ada@example.com",
                "updated_at": "2026-02-01T10:00:00+00:00",
                "occurred_at": "2026-02-02T10:00:00+00:00",
            }
        )
    )
    assert event.event_time == datetime(2026, 2, 2, 10, 0, tzinfo=UTC)


def test_blank_timestamp_is_absent() -> None:
    event = parse_identity_event(
        _message({"user_id": "u", "tenant_id": "t1", "email": "a@example.com", "updated_at": ""})
    )
    assert event.event_time is None


@pytest.mark.parametrize(
    ("body", "raw", "location"),
    [
        ({"tenant_id": "t1", "email": "a@example.com"}, None, "user_id"),
        ({"user_id": " ", "tenant_id": "t1", "email": "a@example.com"}, None, "user_id"),
        ({"user_id": "u", "tenant_id": "t1", "email": "a@example.com", "created_at": "yesterday"}, None, "created_at"),
        ({"user_id": "u", "tenant_id": "t1", "email": "not-an-address"}, None, "email"),
        (None, b"{not json", "body"),
    ],
)
def test_malformed_events_are_poison(body, raw, location) -> None:
    with pytest.raises(PoisonMessageException) as exc_info:
        parse_identity_event(_message(body, raw))
    assert exc_info.value.details["message_id"] == "1-0"
    assert exc_info.value.details["reason"].startswith(location)
