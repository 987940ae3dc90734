"""Burndown report command."""

from __future__ import annotations

import click

from burndown.cli.helpers import (
    json_envelope,
    open_store,
    output_error,
    require_date,
    resolve_project,
)
from burndown.cli.main import cli
from burndown.core.aggregate import ideal_series
from burndown.core.burndown import FetchError, MilestoneNotFoundError, compute_burndown
from burndown.core.window import MissingWindowError


# ---------------------------------------------------------------------------
# Human-readable output
# ---------------------------------------------------------------------------


def _bar(count: int, total: int, width: int = 20) -> str:
    """Render a proportional bar."""
    if total == 0:
        return ""
    filled = min(width, round(count / total * width))
    return "#" * filled + "." * (width - filled)


def _print_human_report(result: dict) -> None:
    """Print the burndown as a table with the ideal line alongside."""
    click.echo(f"=== {result['scope_name']} Burndown ===")
    click.echo("")
    click.echo(f"Window: {result['start_date']} .. {result['end_date']}")
    click.echo(f"Tasks at start: {result['total_tasks_at_start']}")
    if result["data_available_from"] is None:
        click.echo("History: none recorded (figures reflect current state only)")
    elif result["data_available_from"] > result["start_date"]:
        click.echo(f"History: available from {result['data_available_from']}")
    click.echo("")

    snapshots = result["daily_snapshots"]
    if not snapshots:
        click.echo("No days to report yet.")
        return

    scale = max([result["total_tasks_at_start"], *(s["remaining"] for s in snapshots)])
    click.echo(f"  {'date':<10s} {'left':>5s} {'done':>5s} {'+add':>5s} {'reopen':>6s} {'ideal':>6s}")
    for snap, (_, ideal) in zip(snapshots, ideal_series(result)):
        click.echo(
            f"  {snap['date']:<10s} {snap['remaining']:>5d} {snap['completed']:>5d} "
            f"{snap['added']:>5d} {snap['reopened']:>6d} {ideal:>6.1f}  "
            f"{_bar(snap['remaining'], scale)}"
        )


# ---------------------------------------------------------------------------
# burndown report
# ---------------------------------------------------------------------------


@cli.command("report")
@click.option("--milestone", "milestone_id", default=None, help="Milestone ID (omit for the whole project).")
@click.option("--project", default=None, help="Project key (defaults to the configured project).")
@click.option("--today", default=None, help="Treat this day (YYYY-MM-DD) as today.")
@click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")
def report_cmd(
    milestone_id: str | None,
    project: str | None,
    today: str | None,
    output_json: bool,
) -> None:
    """Show the daily burndown for a milestone or the whole project."""
    is_json = output_json
    store, config = open_store(is_json)
    key = resolve_project(config, project, is_json)
    require_date(today, "--today", is_json)

    try:
        result = compute_burndown(store, key, milestone_id, config=config, today=today)
    except MissingWindowError as e:
        output_error(str(e), "MISSING_WINDOW", is_json)
    except MilestoneNotFoundError as e:
        output_error(str(e), "NOT_FOUND", is_json)
    except FetchError as e:
        output_error(str(e), "FETCH_FAILED", is_json)

    if is_json:
        click.echo(json_envelope(True, data=result))
    else:
        _print_human_report(result)
