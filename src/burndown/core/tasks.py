"""Current-state task rows and their materialization from events."""

from __future__ import annotations

import copy
import json
from typing import TypedDict

from burndown.core.events import (
    CREATED,
    DELETED,
    STATUS_CHANGED,
    UPDATED,
    Event,
    field_after,
    is_missing,
    status_after,
)


class Task(TypedDict, total=False):
    id: str
    status: str
    milestone_id: str | None
    title: str | None


# Fields an ``updated`` event may overwrite on the current-state row.
UPDATABLE_FIELDS: tuple[str, ...] = ("milestone_id", "title")


def apply_event_to_task(task: Task | None, event: Event, *, default_status: str = "backlog") -> Task | None:
    """Apply a single *event* to the current-state row (or ``None``).

    Returns the new row, or ``None`` when the event hard-deletes the task.
    The input row is never mutated.

    Raises:
        ValueError: If a non-``created`` event arrives for a task with no row.
    """
    etype = event["event_type"]

    if etype == CREATED:
        return _init_task(event, default_status)

    if etype == DELETED:
        return None

    if task is None:
        raise ValueError(
            f"Cannot apply event type '{etype}' to task '{event['target_id']}' "
            "without an existing row (expected 'created' first)"
        )

    row = copy.deepcopy(task)
    if etype == STATUS_CHANGED:
        new_status = status_after(event)
        if new_status is not None:
            row["status"] = new_status
    elif etype == UPDATED:
        for name in UPDATABLE_FIELDS:
            value = field_after(event, name)
            if not is_missing(value):
                row[name] = value
    return row


def serialize_row(row: dict) -> str:
    """Pretty-print a task or milestone row as sorted JSON with trailing newline."""
    return json.dumps(row, sort_keys=True, indent=2) + "\n"


def _init_task(event: Event, default_status: str) -> Task:
    milestone_id = field_after(event, "milestone_id", None)
    title = field_after(event, "title", None)
    return {
        "id": event["target_id"],
        "status": status_after(event) or default_status,
        "milestone_id": milestone_id if isinstance(milestone_id, str) else None,
        "title": title if isinstance(title, str) else None,
    }
