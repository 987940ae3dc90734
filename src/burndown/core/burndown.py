"""Burndown computation: window, fetch, reconstruct, aggregate."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, TypedDict, TypeVar

from burndown.core.aggregate import DailySnapshot, aggregate, summarize_state
from burndown.core.calendar import to_reporting_date, today_reporting
from burndown.core.config import BurndownConfig, default_config
from burndown.core.events import BURNDOWN_EVENT_TYPES, Event
from burndown.core.replay import state_at_boundary
from burndown.core.tasks import Task
from burndown.core.window import (
    Window,
    collect_candidate_ids,
    resolve_milestone_window,
    resolve_project_window,
)

if TYPE_CHECKING:
    from burndown.storage.store import BurndownStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchError(Exception):
    """Raised when milestones, tasks, or events cannot be retrieved."""


class MilestoneNotFoundError(FetchError):
    """Raised when the requested milestone does not exist in the project."""


class BurndownResult(TypedDict):
    scope_id: str
    scope_name: str
    start_date: str
    end_date: str
    total_tasks_at_start: int
    data_available_from: str | None
    daily_snapshots: list[DailySnapshot]


def compute_burndown(
    store: BurndownStore,
    project: str,
    milestone_id: str | None = None,
    *,
    config: BurndownConfig | None = None,
    today: str | None = None,
) -> BurndownResult:
    """Compute the daily burndown for one milestone, or the whole project.

    Every call recomputes from scratch and keeps no state afterwards.
    *today* (a reporting-calendar ``YYYY-MM-DD``) defaults to the current
    day; the series never extends past it.

    Raises:
        MissingWindowError: If no start or end date can be determined.
        MilestoneNotFoundError: If *milestone_id* is not in *project*.
        FetchError: If any store query fails.
    """
    cfg: BurndownConfig = {**default_config(), **(config or {})}
    offset = cfg["reporting_utc_offset_hours"]
    if today is None:
        today = today_reporting(offset_hours=offset)

    if milestone_id is None:
        window, tasks, candidate_ids = _fetch_project(store, project, cfg, today)
    else:
        window, tasks, candidate_ids = _fetch_milestone(store, project, milestone_id, cfg, today)

    events: list[Event] = _fetch(
        "events", store.get_events, project, candidate_ids, BURNDOWN_EVENT_TYPES
    )
    logger.debug(
        "%s/%s: %d candidate tasks, %d task rows, %d events",
        project,
        window["scope_id"],
        len(candidate_ids),
        len(tasks),
        len(events),
    )

    state = state_at_boundary(
        tasks,
        events,
        milestone_id,
        window["start_date"],
        default_status=cfg["default_status"],
        offset_hours=offset,
    )
    at_start = summarize_state(state, done_status=cfg["done_status"])
    snapshots = aggregate(
        state,
        events,
        milestone_id,
        window["start_date"],
        window["end_date"],
        today=today,
        done_status=cfg["done_status"],
        default_status=cfg["default_status"],
        offset_hours=offset,
    )

    return {
        "scope_id": window["scope_id"],
        "scope_name": window["scope_name"],
        "start_date": window["start_date"],
        "end_date": window["end_date"],
        "total_tasks_at_start": at_start["total"],
        "data_available_from": (
            to_reporting_date(events[0]["occurred_at"], offset) if events else None
        ),
        "daily_snapshots": snapshots,
    }


# ---------------------------------------------------------------------------
# Fetch phase
# ---------------------------------------------------------------------------


def _fetch_milestone(
    store: BurndownStore,
    project: str,
    milestone_id: str,
    cfg: BurndownConfig,
    today: str,
) -> tuple[Window, list[Task], list[str]]:
    milestone = _fetch("milestone", store.get_milestone, project, milestone_id)
    if milestone is None:
        raise MilestoneNotFoundError(
            f"Milestone '{milestone_id}' not found in project '{project}'"
        )
    window = resolve_milestone_window(
        milestone,
        today=today,
        due_fallback_days=cfg["due_fallback_days"],
        offset_hours=cfg["reporting_utc_offset_hours"],
    )

    with ThreadPoolExecutor(max_workers=2) as pool:
        current_f = pool.submit(store.get_milestone_tasks, project, milestone_id)
        history_f = pool.submit(
            store.find_referencing_task_ids, project, milestone_id, BURNDOWN_EVENT_TYPES
        )
        current = _await(current_f, "milestone tasks")
        historical = _await(history_f, "historical task ids")

    candidate_ids = collect_candidate_ids((t["id"] for t in current), historical)
    tasks = _fetch("tasks", store.get_tasks, project, candidate_ids)
    return window, tasks, candidate_ids


def _fetch_project(
    store: BurndownStore,
    project: str,
    cfg: BurndownConfig,
    today: str,
) -> tuple[Window, list[Task], list[str]]:
    milestones = _fetch("milestones", store.get_milestones, project)
    window = resolve_project_window(
        milestones,
        today=today,
        scope_name=cfg["project_scope_name"],
        due_fallback_days=cfg["due_fallback_days"],
        offset_hours=cfg["reporting_utc_offset_hours"],
    )

    with ThreadPoolExecutor(max_workers=2) as pool:
        current_f = pool.submit(store.get_tasks, project)
        history_f = pool.submit(
            store.find_referencing_task_ids, project, None, BURNDOWN_EVENT_TYPES
        )
        tasks = _await(current_f, "project tasks")
        historical = _await(history_f, "historical task ids")

    current_ids = [t["id"] for t in tasks]
    known = set(current_ids)
    missing = [tid for tid in historical if tid not in known]
    if missing:
        tasks = [*tasks, *_fetch("tasks", store.get_tasks, project, missing)]

    return window, tasks, collect_candidate_ids(current_ids, historical)


def _fetch(what: str, fn: Callable[..., T], *args: object) -> T:
    try:
        return fn(*args)
    except FetchError:
        raise
    except Exception as exc:
        raise FetchError(f"Failed to fetch {what}: {exc}") from exc


def _await(future: Future, what: str):  # noqa: ANN202
    try:
        return future.result()
    except FetchError:
        raise
    except Exception as exc:
        raise FetchError(f"Failed to fetch {what}: {exc}") from exc
