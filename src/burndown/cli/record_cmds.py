"""Commands that record milestones and task events into the local store."""

from __future__ import annotations

import click

from burndown.cli.helpers import (
    at_option,
    common_options,
    open_store,
    output_error,
    output_result,
    require_date,
    require_timestamp,
    resolve_project,
)
from burndown.cli.main import cli
from burndown.core.calendar import utc_now
from burndown.core.events import CREATED, DELETED, STATUS_CHANGED, UPDATED, create_event
from burndown.core.ids import generate_milestone_id, generate_task_id
from burndown.storage.store import FileStore


# ---------------------------------------------------------------------------
# burndown milestone ...
# ---------------------------------------------------------------------------


@cli.group()
def milestone() -> None:
    """Manage milestones."""


@milestone.command("add")
@click.argument("name")
@click.option("--start", "start_date", default=None, help="Start date (YYYY-MM-DD).")
@click.option("--due", "due_date", default=None, help="Due date (YYYY-MM-DD).")
@at_option
@common_options
def milestone_add(
    name: str,
    start_date: str | None,
    due_date: str | None,
    occurred_at: str | None,
    project: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Add a milestone NAME to the project."""
    is_json = output_json
    store, config = open_store(is_json)
    key = resolve_project(config, project, is_json)
    require_date(start_date, "--start", is_json)
    require_date(due_date, "--due", is_json)
    require_timestamp(occurred_at, is_json)

    row = {
        "id": generate_milestone_id(),
        "name": name,
        "start_date": start_date,
        "due_date": due_date,
        "created_at": occurred_at or utc_now(),
    }
    store.save_milestone(key, row)
    output_result(
        data=row,
        human_message=f"Added milestone {row['id']} \"{name}\"",
        quiet_value=row["id"],
        is_json=is_json,
        is_quiet=quiet,
    )


@milestone.command("list")
@click.option("--project", default=None, help="Project key (defaults to the configured project).")
@click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")
def milestone_list(project: str | None, output_json: bool) -> None:
    """List the project's milestones."""
    is_json = output_json
    store, config = open_store(is_json)
    key = resolve_project(config, project, is_json)
    rows = sorted(store.get_milestones(key), key=lambda m: (m.get("created_at") or "", m["id"]))

    if is_json:
        output_result(data=rows, human_message="", quiet_value="", is_json=True, is_quiet=False)
        return
    if not rows:
        click.echo("No milestones.")
        return
    for ms in rows:
        start = ms.get("start_date") or "-"
        due = ms.get("due_date") or "-"
        click.echo(f"{ms['id']}  {start:>10s} .. {due:<10s}  {ms.get('name', '')}")


# ---------------------------------------------------------------------------
# burndown task ...
# ---------------------------------------------------------------------------


@cli.group()
def task() -> None:
    """Record task events."""


@task.command("create")
@click.argument("title", required=False, default=None)
@click.option("--milestone", "milestone_id", default=None, help="Milestone to place the task in.")
@click.option("--status", default=None, help="Initial status (defaults to the configured default).")
@at_option
@common_options
def task_create(
    title: str | None,
    milestone_id: str | None,
    status: str | None,
    occurred_at: str | None,
    project: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Create a task (records a 'created' event)."""
    is_json = output_json
    store, config = open_store(is_json)
    key = resolve_project(config, project, is_json)
    require_timestamp(occurred_at, is_json)
    if milestone_id is not None:
        _require_milestone(store, key, milestone_id, is_json)

    task_id = generate_task_id()
    event = create_event(
        CREATED,
        task_id,
        data_after={
            "title": title,
            "status": status or config["default_status"],
            "milestone_id": milestone_id,
        },
        occurred_at=occurred_at,
    )
    row = store.record_event(key, event)
    output_result(
        data=row,
        human_message=f"Created task {task_id}",
        quiet_value=task_id,
        is_json=is_json,
        is_quiet=quiet,
    )


@task.command("move")
@click.argument("task_id")
@click.option("--milestone", "milestone_id", default=None, help="Target milestone.")
@click.option("--none", "unassign", is_flag=True, help="Remove the task from its milestone.")
@at_option
@common_options
def task_move(
    task_id: str,
    milestone_id: str | None,
    unassign: bool,
    occurred_at: str | None,
    project: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Reassign TASK_ID to another milestone (records an 'updated' event)."""
    is_json = output_json
    if (milestone_id is None) == (not unassign):
        output_error("Pass exactly one of --milestone or --none.", "INVALID_INPUT", is_json)
    store, config = open_store(is_json)
    key = resolve_project(config, project, is_json)
    require_timestamp(occurred_at, is_json)
    current = _require_task(store, key, task_id, is_json)
    if milestone_id is not None:
        _require_milestone(store, key, milestone_id, is_json)

    if current.get("milestone_id") == milestone_id:
        output_result(
            data=current,
            human_message=f"Task {task_id} is already there",
            quiet_value=task_id,
            is_json=is_json,
            is_quiet=quiet,
        )
        return

    event = create_event(
        UPDATED,
        task_id,
        data_before={"milestone_id": current.get("milestone_id")},
        data_after={"milestone_id": milestone_id},
        occurred_at=occurred_at,
    )
    row = store.record_event(key, event)
    target = milestone_id or "no milestone"
    output_result(
        data=row,
        human_message=f"Moved task {task_id} to {target}",
        quiet_value=task_id,
        is_json=is_json,
        is_quiet=quiet,
    )


@task.command("status")
@click.argument("task_id")
@click.argument("new_status")
@at_option
@common_options
def task_status(
    task_id: str,
    new_status: str,
    occurred_at: str | None,
    project: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Change TASK_ID's status (records a 'status_changed' event)."""
    is_json = output_json
    store, config = open_store(is_json)
    key = resolve_project(config, project, is_json)
    require_timestamp(occurred_at, is_json)
    current = _require_task(store, key, task_id, is_json)

    if current.get("status") == new_status:
        output_result(
            data=current,
            human_message=f"Task {task_id} is already {new_status}",
            quiet_value=task_id,
            is_json=is_json,
            is_quiet=quiet,
        )
        return

    event = create_event(
        STATUS_CHANGED,
        task_id,
        data_before={"status": current.get("status")},
        data_after={"status": new_status},
        occurred_at=occurred_at,
    )
    row = store.record_event(key, event)
    output_result(
        data=row,
        human_message=f"Task {task_id}: {current.get('status')} -> {new_status}",
        quiet_value=task_id,
        is_json=is_json,
        is_quiet=quiet,
    )


@task.command("delete")
@click.argument("task_id")
@at_option
@common_options
def task_delete(
    task_id: str,
    occurred_at: str | None,
    project: str | None,
    output_json: bool,
    quiet: bool,
) -> None:
    """Delete TASK_ID (records a 'deleted' event and removes its row)."""
    is_json = output_json
    store, config = open_store(is_json)
    key = resolve_project(config, project, is_json)
    require_timestamp(occurred_at, is_json)
    current = _require_task(store, key, task_id, is_json)

    event = create_event(DELETED, task_id, data_before=dict(current), occurred_at=occurred_at)
    store.record_event(key, event)
    output_result(
        data={"id": task_id, "deleted": True},
        human_message=f"Deleted task {task_id}",
        quiet_value=task_id,
        is_json=is_json,
        is_quiet=quiet,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _require_task(store: FileStore, project: str, task_id: str, is_json: bool) -> dict:
    rows = store.get_tasks(project, [task_id])
    if not rows:
        output_error(f"Task '{task_id}' not found.", "NOT_FOUND", is_json)
    return rows[0]


def _require_milestone(store: FileStore, project: str, milestone_id: str, is_json: bool) -> None:
    if store.get_milestone(project, milestone_id) is None:
        output_error(f"Milestone '{milestone_id}' not found.", "NOT_FOUND", is_json)
