"""Event kinds, construction, and tolerant payload access."""

from __future__ import annotations

import json
from typing import TypedDict

from burndown.core.calendar import parse_ts, utc_now
from burndown.core.ids import generate_event_id

# ---------------------------------------------------------------------------
# Canonical event kinds
# ---------------------------------------------------------------------------

CREATED = "created"
UPDATED = "updated"
STATUS_CHANGED = "status_changed"
DELETED = "deleted"

BURNDOWN_EVENT_TYPES: frozenset[str] = frozenset(
    {
        CREATED,
        UPDATED,
        STATUS_CHANGED,
        DELETED,
    }
)

# Audit-log rows name the same kinds with a ``task.`` prefix.
EVENT_TYPE_ALIASES: dict[str, str] = {
    "task.created": CREATED,
    "task.updated": UPDATED,
    "task.status_changed": STATUS_CHANGED,
    "task.deleted": DELETED,
}


class Event(TypedDict):
    id: str
    event_type: str
    target_id: str
    data_before: dict | None
    data_after: dict | None
    occurred_at: str


def canonical_event_type(event_type: object) -> str | None:
    """Map a raw event type to its canonical kind, or ``None`` if unknown."""
    if not isinstance(event_type, str):
        return None
    if event_type in BURNDOWN_EVENT_TYPES:
        return event_type
    return EVENT_TYPE_ALIASES.get(event_type)


# ---------------------------------------------------------------------------
# Event construction
# ---------------------------------------------------------------------------


def create_event(
    event_type: str,
    target_id: str,
    *,
    data_before: dict | None = None,
    data_after: dict | None = None,
    event_id: str | None = None,
    occurred_at: str | None = None,
) -> Event:
    """Build a complete event dict.

    *event_type* may be a canonical kind or an audit-log alias; it is
    stored in canonical form.
    """
    kind = canonical_event_type(event_type)
    if kind is None:
        raise ValueError(f"Unknown event type: '{event_type}'")
    return {
        "id": event_id if event_id is not None else generate_event_id(),
        "event_type": kind,
        "target_id": target_id,
        "data_before": data_before,
        "data_after": data_after,
        "occurred_at": occurred_at if occurred_at is not None else utc_now(),
    }


def normalize_event(raw: dict) -> Event | None:
    """Return *raw* as a canonical event, or ``None`` if it is not usable.

    Rows without a target, a parseable ``occurred_at``, or a burndown
    event type are dropped.  Malformed payloads are kept as ``None`` so
    that the affected fields replay as no-ops.
    """
    kind = canonical_event_type(raw.get("event_type"))
    target_id = raw.get("target_id")
    occurred_at = raw.get("occurred_at")
    if kind is None or not isinstance(target_id, str) or not target_id:
        return None
    if not isinstance(occurred_at, str) or parse_ts(occurred_at) is None:
        return None
    before = raw.get("data_before")
    after = raw.get("data_after")
    return {
        "id": str(raw.get("id", "")),
        "event_type": kind,
        "target_id": target_id,
        "data_before": before if isinstance(before, dict) else None,
        "data_after": after if isinstance(after, dict) else None,
        "occurred_at": occurred_at,
    }


def sort_events(events: list[Event]) -> list[Event]:
    """Return *events* in non-decreasing ``occurred_at`` order.

    The sort is stable: events sharing a timestamp keep their insertion
    order.
    """
    return sorted(events, key=lambda e: parse_ts(e["occurred_at"]))


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_event(event: Event) -> str:
    """Serialize an event to compact JSONL (one line, trailing newline)."""
    return json.dumps(event, sort_keys=True, separators=(",", ":")) + "\n"


# ---------------------------------------------------------------------------
# Payload access
# ---------------------------------------------------------------------------

_MISSING = object()


def field_before(event: Event, key: str, default: object = _MISSING) -> object:
    """Return ``data_before[key]``; *default* (or a sentinel) when absent."""
    return _payload_field(event.get("data_before"), key, default)


def field_after(event: Event, key: str, default: object = _MISSING) -> object:
    """Return ``data_after[key]``; *default* (or a sentinel) when absent."""
    return _payload_field(event.get("data_after"), key, default)


def is_missing(value: object) -> bool:
    """True if a payload lookup found no such field."""
    return value is _MISSING


def status_after(event: Event) -> str | None:
    """The status asserted by the event, if it carries a usable one."""
    value = field_after(event, "status", None)
    return value if isinstance(value, str) and value else None


def status_before(event: Event) -> str | None:
    value = field_before(event, "status", None)
    return value if isinstance(value, str) and value else None


def references_milestone(event: Event, milestone_id: str) -> bool:
    """True if either side of the event names *milestone_id*."""
    return (
        field_before(event, "milestone_id", None) == milestone_id
        or field_after(event, "milestone_id", None) == milestone_id
    )


def _payload_field(payload: object, key: str, default: object) -> object:
    if not isinstance(payload, dict) or key not in payload:
        return default
    return payload[key]
