"""Daily burndown aggregation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypedDict

from burndown.core.calendar import (
    REPORTING_UTC_OFFSET_HOURS,
    days_between,
    next_reporting_day,
    to_reporting_date,
    today_reporting,
)
from burndown.core.events import (
    CREATED,
    DELETED,
    STATUS_CHANGED,
    UPDATED,
    Event,
    status_after,
    status_before,
)
from burndown.core.replay import (
    DEFAULT_STATUS,
    StateMap,
    in_scope_for_created,
    milestone_move,
)

logger = logging.getLogger(__name__)

DONE_STATUS = "done"


class DailySnapshot(TypedDict):
    date: str
    remaining: int
    completed: int
    added: int
    reopened: int


def summarize_state(state: StateMap, *, done_status: str = DONE_STATUS) -> dict[str, int]:
    """Count in-scope tasks at the boundary.

    Returns ``{"total": ..., "remaining": ..., "completed": ...}``.
    """
    members = [s for s in state.values() if s["in_scope"]]
    completed = sum(1 for s in members if s["status"] == done_status)
    return {
        "total": len(members),
        "remaining": len(members) - completed,
        "completed": completed,
    }


def bucket_events_by_day(
    events: list[Event],
    start_date: str,
    *,
    offset_hours: int = REPORTING_UTC_OFFSET_HOURS,
) -> dict[str, list[Event]]:
    """Group events dated on or after *start_date* by reporting day.

    Arrival order is preserved inside each bucket.
    """
    buckets: dict[str, list[Event]] = {}
    for event in events:
        day = to_reporting_date(event["occurred_at"], offset_hours)
        if day < start_date:
            continue
        buckets.setdefault(day, []).append(event)
    return buckets


def aggregate(
    state: StateMap,
    events: list[Event],
    scope_id: str | None,
    start_date: str,
    end_date: str,
    *,
    today: str | None = None,
    done_status: str = DONE_STATUS,
    default_status: str = DEFAULT_STATUS,
    offset_hours: int = REPORTING_UTC_OFFSET_HOURS,
) -> list[DailySnapshot]:
    """Walk each reporting day from *start_date* through ``min(end_date, today)``.

    *state* is the reconstructed state at the start of *start_date* (see
    ``state_at_boundary``); it is read, not modified.  One snapshot is
    emitted per day, in ascending date order.  ``remaining`` and
    ``completed`` are running totals clamped at zero; ``added`` and
    ``reopened`` count that day only.
    """
    if today is None:
        today = today_reporting(offset_hours=offset_hours)

    walk = _Walk(scope_id, done_status, default_status)
    for task_id, task_state in state.items():
        walk.statuses[task_id] = task_state["status"]
        if task_state["in_scope"]:
            walk.members.add(task_id)

    start = summarize_state(state, done_status=done_status)
    walk.remaining = start["remaining"]
    total_completed = start["completed"]

    by_day = bucket_events_by_day(events, start_date, offset_hours=offset_hours)
    last_day = min(end_date, today)

    snapshots: list[DailySnapshot] = []
    day = start_date
    while day <= last_day:
        walk.begin_day()
        for event in by_day.get(day, ()):
            handler = _DAY_HANDLERS.get(event["event_type"])
            if handler is not None:
                handler(walk, event)

        walk.remaining += walk.added_today + walk.reopened_today - walk.completed_today
        total_completed += walk.completed_today - walk.reopened_today

        if walk.remaining < 0 or total_completed < 0:
            logger.warning(
                "clamping negative totals on %s (remaining=%d, completed=%d)",
                day,
                walk.remaining,
                total_completed,
            )

        snapshots.append(
            {
                "date": day,
                "remaining": max(0, walk.remaining),
                "completed": max(0, total_completed),
                "added": walk.added_today,
                "reopened": walk.reopened_today,
            }
        )
        day = next_reporting_day(day)

    return snapshots


def ideal_remaining(total: int, start_date: str, end_date: str, date: str) -> float:
    """Linear ideal burn from *total* on *start_date* to 0 on *end_date*."""
    period = max(1, days_between(start_date, end_date))
    elapsed = days_between(start_date, date)
    value = total * (1 - elapsed / period)
    return round(min(max(value, 0.0), float(total)), 2)


def ideal_series(result: dict) -> list[tuple[str, float]]:
    """Ideal-line values aligned with ``result["daily_snapshots"]``."""
    return [
        (
            snap["date"],
            ideal_remaining(
                result["total_tasks_at_start"],
                result["start_date"],
                result["end_date"],
                snap["date"],
            ),
        )
        for snap in result["daily_snapshots"]
    ]


# ---------------------------------------------------------------------------
# Internal: per-call walk state and day handlers
# ---------------------------------------------------------------------------


class _Walk:
    """Membership, statuses and counters for a single ``aggregate`` call."""

    __slots__ = (
        "scope_id",
        "done_status",
        "default_status",
        "members",
        "statuses",
        "remaining",
        "completed_today",
        "reopened_today",
        "added_today",
    )

    def __init__(self, scope_id: str | None, done_status: str, default_status: str) -> None:
        self.scope_id = scope_id
        self.done_status = done_status
        self.default_status = default_status
        self.members: set[str] = set()
        self.statuses: dict[str, str] = {}
        self.remaining = 0
        self.completed_today = 0
        self.reopened_today = 0
        self.added_today = 0

    def begin_day(self) -> None:
        self.completed_today = 0
        self.reopened_today = 0
        self.added_today = 0

    def is_done(self, task_id: str) -> bool:
        return self.statuses.get(task_id, self.default_status) == self.done_status

    def join(self, task_id: str) -> None:
        self.members.add(task_id)
        if not self.is_done(task_id):
            self.added_today += 1

    def leave(self, task_id: str) -> None:
        # Exits come straight off the running total, alongside the set removal.
        self.members.discard(task_id)
        if not self.is_done(task_id):
            self.remaining -= 1


_DAY_HANDLERS: dict[str, Callable[[_Walk, Event], None]] = {}


def _register_day_handler(etype: str):  # noqa: ANN202
    """Decorator that registers a daily aggregation handler for *etype*."""

    def decorator(fn):  # noqa: ANN001, ANN202
        _DAY_HANDLERS[etype] = fn
        return fn

    return decorator


@_register_day_handler(STATUS_CHANGED)
def _day_status_changed(walk: _Walk, event: Event) -> None:
    task_id = event["target_id"]
    new_status = status_after(event)
    if new_status is None:
        return
    old_status = status_before(event) or walk.statuses.get(task_id, walk.default_status)
    # Tracked for every task so a later re-entry sees the right status.
    walk.statuses[task_id] = new_status

    if task_id not in walk.members:
        return
    if new_status == walk.done_status and old_status != walk.done_status:
        walk.completed_today += 1
    elif old_status == walk.done_status and new_status != walk.done_status:
        walk.reopened_today += 1


@_register_day_handler(CREATED)
def _day_created(walk: _Walk, event: Event) -> None:
    task_id = event["target_id"]
    walk.statuses[task_id] = status_after(event) or walk.default_status
    if in_scope_for_created(event, walk.scope_id) and task_id not in walk.members:
        walk.join(task_id)


@_register_day_handler(UPDATED)
def _day_updated(walk: _Walk, event: Event) -> None:
    if walk.scope_id is None:
        return
    task_id = event["target_id"]
    entered, left = milestone_move(event, walk.scope_id)
    if entered and task_id not in walk.members:
        walk.join(task_id)
    elif left and task_id in walk.members:
        walk.leave(task_id)


@_register_day_handler(DELETED)
def _day_deleted(walk: _Walk, event: Event) -> None:
    task_id = event["target_id"]
    if task_id in walk.members:
        walk.leave(task_id)
