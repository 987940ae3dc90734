"""Read-side store protocol plus in-memory and file-backed implementations.

The engine only ever reads through ``BurndownStore``.  Both bundled
stores share the same query semantics: events come back normalized to
their canonical kind, filtered to the requested kinds, and in
non-decreasing ``occurred_at`` order with ties left in insertion order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from burndown.core.events import (
    Event,
    normalize_event,
    references_milestone,
    serialize_event,
    sort_events,
)
from burndown.core.ids import validate_project_key
from burndown.core.tasks import Task, apply_event_to_task, serialize_row
from burndown.core.window import Milestone
from burndown.storage.fs import (
    atomic_write,
    ensure_project_dirs,
    jsonl_append,
    project_dir,
)
from burndown.storage.locks import store_lock
from burndown.storage.readers import read_json, read_json_dir, read_jsonl

logger = logging.getLogger(__name__)


class BurndownStore(Protocol):
    """The queries ``compute_burndown`` needs from a backing store."""

    def get_milestone(self, project: str, milestone_id: str) -> Milestone | None: ...

    def get_milestones(self, project: str) -> list[Milestone]: ...

    def get_tasks(self, project: str, ids: Iterable[str] | None = None) -> list[Task]: ...

    def get_milestone_tasks(self, project: str, milestone_id: str) -> list[Task]: ...

    def find_referencing_task_ids(
        self,
        project: str,
        milestone_id: str | None,
        event_types: Iterable[str],
    ) -> list[str]: ...

    def get_events(
        self,
        project: str,
        task_ids: Iterable[str],
        event_types: Iterable[str],
    ) -> list[Event]: ...


class _RowQueries:
    """Query semantics shared by the bundled stores.

    Subclasses supply the raw rows through ``_raw_events``, ``_raw_tasks``
    and ``_raw_milestones``.
    """

    default_status = "backlog"

    def _raw_events(self, project: str) -> list[dict]:
        raise NotImplementedError

    def _raw_tasks(self, project: str) -> list[Task]:
        raise NotImplementedError

    def _raw_milestones(self, project: str) -> list[Milestone]:
        raise NotImplementedError

    # -- queries -------------------------------------------------------------

    def get_milestone(self, project: str, milestone_id: str) -> Milestone | None:
        for ms in self._raw_milestones(project):
            if ms.get("id") == milestone_id:
                return ms
        return None

    def get_milestones(self, project: str) -> list[Milestone]:
        return list(self._raw_milestones(project))

    def get_tasks(self, project: str, ids: Iterable[str] | None = None) -> list[Task]:
        tasks = self._raw_tasks(project)
        if ids is None:
            return list(tasks)
        wanted = set(ids)
        return [t for t in tasks if t.get("id") in wanted]

    def get_milestone_tasks(self, project: str, milestone_id: str) -> list[Task]:
        return [t for t in self._raw_tasks(project) if t.get("milestone_id") == milestone_id]

    def find_referencing_task_ids(
        self,
        project: str,
        milestone_id: str | None,
        event_types: Iterable[str],
    ) -> list[str]:
        """Task ids with an event that references the scope.

        For a milestone, an event references it when either side of the
        event carries that ``milestone_id``.  For the whole project
        (``None``) every matching event does.
        """
        ids: dict[str, None] = {}
        for event in self._events(project, event_types):
            if milestone_id is None or references_milestone(event, milestone_id):
                ids[event["target_id"]] = None
        return list(ids)

    def get_events(
        self,
        project: str,
        task_ids: Iterable[str],
        event_types: Iterable[str],
    ) -> list[Event]:
        wanted = set(task_ids)
        if not wanted:
            return []
        return [e for e in self._events(project, event_types) if e["target_id"] in wanted]

    def _events(self, project: str, event_types: Iterable[str]) -> list[Event]:
        kinds = frozenset(event_types)
        events: list[Event] = []
        for raw in self._raw_events(project):
            event = normalize_event(raw)
            if event is not None and event["event_type"] in kinds:
                events.append(event)
        return sort_events(events)


class InMemoryStore(_RowQueries):
    """A store held entirely in memory, keyed by project."""

    def __init__(self) -> None:
        self._event_rows: dict[str, list[dict]] = {}
        self._task_rows: dict[str, dict[str, Task]] = {}
        self._milestone_rows: dict[str, dict[str, Milestone]] = {}

    def add_milestone(self, project: str, milestone: Milestone) -> None:
        self._milestone_rows.setdefault(project, {})[milestone["id"]] = milestone

    def add_task(self, project: str, task: Task) -> None:
        self._task_rows.setdefault(project, {})[task["id"]] = task

    def add_event(self, project: str, event: dict) -> None:
        """Append a raw event row without touching current-state rows."""
        self._event_rows.setdefault(project, []).append(event)

    def record_event(self, project: str, event: Event) -> Task | None:
        """Append *event* and apply it to the task's current-state row."""
        self.add_event(project, event)
        tasks = self._task_rows.setdefault(project, {})
        row = apply_event_to_task(
            tasks.get(event["target_id"]), event, default_status=self.default_status
        )
        if row is None:
            tasks.pop(event["target_id"], None)
        else:
            tasks[event["target_id"]] = row
        return row

    def _raw_events(self, project: str) -> list[dict]:
        return self._event_rows.get(project, [])

    def _raw_tasks(self, project: str) -> list[Task]:
        return list(self._task_rows.get(project, {}).values())

    def _raw_milestones(self, project: str) -> list[Milestone]:
        return list(self._milestone_rows.get(project, {}).values())


class FileStore(_RowQueries):
    """A store laid out under a ``.burndown/`` directory.

    ``projects/<project>/events.jsonl`` is the append-only event log;
    ``tasks/<id>.json`` and ``milestones/<id>.json`` hold current rows.
    """

    def __init__(self, burndown_dir: Path, *, default_status: str = "backlog") -> None:
        self.burndown_dir = burndown_dir
        self.default_status = default_status

    @property
    def locks_dir(self) -> Path:
        return self.burndown_dir / "locks"

    def list_projects(self) -> list[str]:
        projects = self.burndown_dir / "projects"
        if not projects.is_dir():
            return []
        return sorted(p.name for p in projects.iterdir() if p.is_dir())

    # -- writes --------------------------------------------------------------

    def save_milestone(self, project: str, milestone: Milestone) -> None:
        base = self._ensure(project)
        with store_lock(self.locks_dir, project):
            atomic_write(base / "milestones" / f"{milestone['id']}.json", serialize_row(milestone))

    def record_event(self, project: str, event: Event) -> Task | None:
        """Append *event* to the log and apply it to the task's current row.

        Log append and row write happen under the project lock.  A
        ``deleted`` event removes the row.
        """
        base = self._ensure(project)
        task_path = base / "tasks" / f"{event['target_id']}.json"
        with store_lock(self.locks_dir, project):
            current = read_json(task_path)
            row = apply_event_to_task(current, event, default_status=self.default_status)
            jsonl_append(base / "events.jsonl", serialize_event(event))
            if row is None:
                task_path.unlink(missing_ok=True)
            else:
                atomic_write(task_path, serialize_row(row))
        logger.debug("recorded %s for %s in %s", event["event_type"], event["target_id"], project)
        return row

    # -- raw rows ------------------------------------------------------------

    def _raw_events(self, project: str) -> list[dict]:
        return read_jsonl(self._dir(project) / "events.jsonl")

    def _raw_tasks(self, project: str) -> list[Task]:
        return read_json_dir(self._dir(project) / "tasks")

    def _raw_milestones(self, project: str) -> list[Milestone]:
        return read_json_dir(self._dir(project) / "milestones")

    def _dir(self, project: str) -> Path:
        if not validate_project_key(project):
            raise ValueError(f"Invalid project key: '{project}'")
        return project_dir(self.burndown_dir, project)

    def _ensure(self, project: str) -> Path:
        self._dir(project)
        self.locks_dir.mkdir(parents=True, exist_ok=True)
        return ensure_project_dirs(self.burndown_dir, project)
