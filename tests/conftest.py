"""Shared test fixtures."""

from __future__ import annotations

import itertools
import json
from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture()
def burndown_root(tmp_path: Path) -> Path:
    """Return a temporary directory suitable for initializing .burndown/ in."""
    return tmp_path


@pytest.fixture()
def initialized_root(burndown_root: Path) -> Path:
    """Return a temporary directory with .burndown/ already initialized."""
    from burndown.core.config import default_config, serialize_config
    from burndown.storage.fs import (
        BURNDOWN_DIR,
        atomic_write,
        ensure_burndown_dirs,
        ensure_project_dirs,
    )

    ensure_burndown_dirs(burndown_root)
    burndown_dir = burndown_root / BURNDOWN_DIR
    ensure_project_dirs(burndown_dir, "default")
    atomic_write(burndown_dir / "config.json", serialize_config(default_config()))
    return burndown_root


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def cli_env(initialized_root: Path) -> dict[str, str]:
    """Return env dict with BURNDOWN_ROOT pointing to initialized_root."""
    return {"BURNDOWN_ROOT": str(initialized_root)}


@pytest.fixture()
def invoke(cli_runner: CliRunner, cli_env: dict[str, str]):
    """Return a helper that invokes CLI commands with the right environment.

    Usage::

        result = invoke("task", "create", "My task")
    """
    from burndown.cli.main import cli

    def _invoke(*args: str, **kwargs):
        return cli_runner.invoke(cli, list(args), env=cli_env, **kwargs)

    return _invoke


@pytest.fixture()
def invoke_json(invoke):
    """Like invoke, but appends --json and parses the response.

    Returns (parsed_dict, exit_code) tuple.
    """

    def _invoke_json(*args: str) -> tuple[dict, int]:
        result = invoke(*args, "--json")
        parsed = json.loads(result.output)
        return parsed, result.exit_code

    return _invoke_json


# ---------------------------------------------------------------------------
# Event and row factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_event():
    """Factory fixture: build a canonical event on a reporting day.

    ``day`` is a ``YYYY-MM-DD`` string; the event lands at noon on that
    day in UTC+9 (03:00Z).  Pass ``at`` to use an exact timestamp.

    Usage::

        ev = make_event("created", "t1", "2024-01-01", after={"status": "backlog"})
    """
    counter = itertools.count(1)

    def _make(
        event_type: str,
        target_id: str,
        day: str | None = None,
        *,
        before: dict | None = None,
        after: dict | None = None,
        at: str | None = None,
    ) -> dict:
        occurred_at = at if at is not None else f"{day}T03:00:00Z"
        return {
            "id": f"ev_{next(counter):04d}",
            "event_type": event_type,
            "target_id": target_id,
            "data_before": before,
            "data_after": after,
            "occurred_at": occurred_at,
        }

    return _make


@pytest.fixture()
def milestone_row():
    """Factory fixture: build a milestone row."""

    def _row(
        ms_id: str = "ms1",
        *,
        name: str = "Sprint 1",
        start: str | None = None,
        due: str | None = None,
        created_at: str = "2023-12-20T00:00:00Z",
    ) -> dict:
        return {
            "id": ms_id,
            "name": name,
            "start_date": start,
            "due_date": due,
            "created_at": created_at,
        }

    return _row
