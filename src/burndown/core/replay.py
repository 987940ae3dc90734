"""Task state reconstruction ("time travel") from the event log.

``state_at_boundary`` answers: at the start of a given reporting day,
which tasks belonged to the scope and what status did each hold?

Tasks with no events at all keep their current row as the best-known
state.  Any task with at least one event, even one dated after the
boundary, is rebuilt purely by replay from a neutral baseline so that
its current row never mixes with its history.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypedDict

from burndown.core.calendar import REPORTING_UTC_OFFSET_HOURS, to_reporting_date
from burndown.core.events import (
    CREATED,
    DELETED,
    STATUS_CHANGED,
    UPDATED,
    Event,
    field_after,
    field_before,
    is_missing,
    status_after,
)
from burndown.core.tasks import Task

DEFAULT_STATUS = "backlog"


class TaskState(TypedDict):
    in_scope: bool
    status: str


StateMap = dict[str, TaskState]


def state_at_boundary(
    tasks: list[Task],
    events: list[Event],
    scope_id: str | None,
    boundary_date: str,
    *,
    default_status: str = DEFAULT_STATUS,
    offset_hours: int = REPORTING_UTC_OFFSET_HOURS,
) -> StateMap:
    """Reconstruct every candidate task's state as of the start of *boundary_date*.

    *scope_id* is a milestone id, or ``None`` for the whole project.
    *events* must already be in chronological order; only those whose
    reporting day is strictly before *boundary_date* are replayed.

    The result is a fresh dict owned by the caller.  Identical inputs
    always produce an identical map (same keys, same order, same values).
    """
    project_wide = scope_id is None

    state: StateMap = {}
    for task in tasks:
        state[task["id"]] = {
            "in_scope": project_wide or task.get("milestone_id") == scope_id,
            "status": task.get("status") or default_status,
        }

    # Tasks with any history are reset; replay alone decides their state.
    for event in events:
        state[event["target_id"]] = {"in_scope": False, "status": default_status}

    for event in events:
        if to_reporting_date(event["occurred_at"], offset_hours) >= boundary_date:
            continue
        handler = _TRANSITIONS.get(event["event_type"])
        if handler is not None:
            handler(state, event, scope_id, default_status)

    return state


def in_scope_for_created(event: Event, scope_id: str | None) -> bool:
    """Whether a ``created`` event places its task inside the scope."""
    if scope_id is None:
        return True
    return field_after(event, "milestone_id", None) == scope_id


def milestone_move(event: Event, scope_id: str) -> tuple[bool, bool]:
    """Classify an ``updated`` event relative to milestone *scope_id*.

    Returns ``(entered, left)``.  An event whose ``data_after`` carries no
    ``milestone_id`` is not a reassignment and yields ``(False, False)``.
    """
    to_ms = field_after(event, "milestone_id")
    if is_missing(to_ms):
        return False, False
    from_ms = field_before(event, "milestone_id", None)
    entered = to_ms == scope_id and from_ms != scope_id
    left = from_ms == scope_id and to_ms != scope_id
    return entered, left


# ---------------------------------------------------------------------------
# Internal: transition registry
# ---------------------------------------------------------------------------

_TRANSITIONS: dict[str, Callable[[StateMap, Event, str | None, str], None]] = {}


def _register_transition(etype: str):  # noqa: ANN202
    """Decorator that registers a replay handler for *etype*."""

    def decorator(fn):  # noqa: ANN001, ANN202
        _TRANSITIONS[etype] = fn
        return fn

    return decorator


@_register_transition(CREATED)
def _replay_created(state: StateMap, event: Event, scope_id: str | None, default_status: str) -> None:
    state[event["target_id"]] = {
        "in_scope": in_scope_for_created(event, scope_id),
        "status": status_after(event) or default_status,
    }


@_register_transition(UPDATED)
def _replay_updated(state: StateMap, event: Event, scope_id: str | None, default_status: str) -> None:
    # Moving between milestones never changes whole-project membership.
    if scope_id is None:
        return
    current = state.get(event["target_id"])
    if current is None:
        return
    to_ms = field_after(event, "milestone_id")
    if is_missing(to_ms):
        return
    if to_ms == scope_id:
        current["in_scope"] = True
    elif field_before(event, "milestone_id", None) == scope_id:
        current["in_scope"] = False


@_register_transition(STATUS_CHANGED)
def _replay_status_changed(
    state: StateMap, event: Event, scope_id: str | None, default_status: str
) -> None:
    current = state.get(event["target_id"])
    new_status = status_after(event)
    if current is not None and new_status is not None:
        current["status"] = new_status


@_register_transition(DELETED)
def _replay_deleted(state: StateMap, event: Event, scope_id: str | None, default_status: str) -> None:
    current = state.get(event["target_id"])
    if current is not None:
        current["in_scope"] = False
