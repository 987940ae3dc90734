"""Report window resolution for a milestone or the whole project."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TypedDict

from burndown.core.calendar import (
    REPORTING_UTC_OFFSET_HOURS,
    add_days,
    is_valid_date,
    parse_ts,
    to_reporting_date,
)

logger = logging.getLogger(__name__)

PROJECT_SCOPE_ID = "all"
DUE_FALLBACK_DAYS = 14


class MissingWindowError(Exception):
    """Raised when neither a start nor an end date can be determined."""


class Milestone(TypedDict):
    id: str
    name: str
    start_date: str | None
    due_date: str | None
    created_at: str


class Window(TypedDict):
    scope_id: str
    scope_name: str
    start_date: str
    end_date: str


def resolve_milestone_window(
    milestone: Milestone,
    *,
    today: str,
    due_fallback_days: int = DUE_FALLBACK_DAYS,
    offset_hours: int = REPORTING_UTC_OFFSET_HOURS,
) -> Window:
    """Resolve the report window for a single milestone.

    A missing start date falls back to the milestone's creation day; a
    missing due date falls back to *today* plus *due_fallback_days*.

    Raises:
        MissingWindowError: If the milestone has neither date.
    """
    start = _date_or_none(milestone.get("start_date"))
    end = _date_or_none(milestone.get("due_date"))

    if start is None and end is None:
        raise MissingWindowError(
            f"Milestone '{milestone.get('name', milestone.get('id'))}' has no start date "
            "or due date. Set a start date or due date to compute a burndown."
        )

    if start is None:
        start = _created_day(milestone, offset_hours)
        if start is None:
            raise MissingWindowError(
                f"Milestone '{milestone.get('name', milestone.get('id'))}' has no start date "
                "and no usable creation time. Set a start date."
            )
    if end is None:
        end = add_days(today, due_fallback_days)

    logger.debug("milestone %s window %s..%s", milestone.get("id"), start, end)
    return {
        "scope_id": milestone["id"],
        "scope_name": milestone.get("name") or milestone["id"],
        "start_date": start,
        "end_date": end,
    }


def resolve_project_window(
    milestones: list[Milestone],
    *,
    today: str,
    scope_name: str = "Whole project",
    due_fallback_days: int = DUE_FALLBACK_DAYS,
    offset_hours: int = REPORTING_UTC_OFFSET_HOURS,
) -> Window:
    """Resolve the report window spanning every milestone in a project.

    ``start = min(start_date)`` and ``end = max(due_date)`` over the
    milestones that define them.  With no start date anywhere the earliest
    milestone creation day is used; with no due date anywhere the window
    ends *due_fallback_days* after *today*.

    Raises:
        MissingWindowError: If there are no milestones, or none of them
            defines a start date or a due date.
    """
    starts = [d for d in (_date_or_none(ms.get("start_date")) for ms in milestones) if d]
    dues = [d for d in (_date_or_none(ms.get("due_date")) for ms in milestones) if d]

    if not starts and not dues:
        if not milestones:
            raise MissingWindowError(
                "The project has no milestones. Add a milestone with a start date or due date."
            )
        raise MissingWindowError(
            "No milestone defines a start date or due date. "
            "Set a start date or due date on at least one milestone."
        )

    if starts:
        start = min(starts)
    else:
        created = [d for d in (_created_day(ms, offset_hours) for ms in milestones) if d]
        if not created:
            raise MissingWindowError(
                "No milestone defines a start date or a usable creation time."
            )
        start = min(created)

    end = max(dues) if dues else add_days(today, due_fallback_days)

    logger.debug("project window over %d milestones: %s..%s", len(milestones), start, end)
    return {
        "scope_id": PROJECT_SCOPE_ID,
        "scope_name": scope_name,
        "start_date": start,
        "end_date": end,
    }


def collect_candidate_ids(current_ids: Iterable[str], historical_ids: Iterable[str]) -> list[str]:
    """Union of currently-scoped and historically-referenced task ids.

    Order is first-seen, current ids first.
    """
    return list(dict.fromkeys([*current_ids, *historical_ids]))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _date_or_none(value: object) -> str | None:
    return value if is_valid_date(value) else None


def _created_day(milestone: Milestone, offset_hours: int) -> str | None:
    created_at = milestone.get("created_at")
    if not isinstance(created_at, str) or parse_ts(created_at) is None:
        return None
    return to_reporting_date(created_at, offset_hours)
