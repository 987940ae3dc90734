"""Shared CLI helpers and output utilities."""

from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import click

from burndown.core.calendar import is_valid_date, parse_ts
from burndown.core.config import BurndownConfig, load_config, validate_config
from burndown.core.ids import validate_project_key
from burndown.storage.fs import BURNDOWN_DIR, BurndownRootError, find_root
from burndown.storage.store import FileStore


# ---------------------------------------------------------------------------
# Root, config & store
# ---------------------------------------------------------------------------


def require_root(is_json: bool = False) -> Path:
    """Find .burndown/ directory or exit with error."""
    try:
        root = find_root()
    except BurndownRootError as e:
        output_error(str(e), "NOT_INITIALIZED", is_json)
    if root is None:
        output_error(
            "Not a burndown project (no .burndown/ found). Run 'burndown init' first.",
            "NOT_INITIALIZED",
            is_json,
        )
    return root / BURNDOWN_DIR


def load_project_config(burndown_dir: Path) -> BurndownConfig:
    """Load config.json from the burndown directory, with defaults filled in."""
    return load_config((burndown_dir / "config.json").read_text())


def open_store(is_json: bool) -> tuple[FileStore, BurndownConfig]:
    """Locate the root and return its store and config."""
    burndown_dir = require_root(is_json)
    try:
        config = load_project_config(burndown_dir)
    except ValueError as e:
        output_error(f"Unreadable config.json: {e}", "INVALID_CONFIG", is_json)
    problems = validate_config(config)
    if problems:
        output_error("; ".join(problems), "INVALID_CONFIG", is_json)
    return FileStore(burndown_dir, default_status=config["default_status"]), config


def resolve_project(config: BurndownConfig, project: str | None, is_json: bool) -> str:
    """Return *project* or the configured default, validated."""
    key = project if project is not None else config["default_project"]
    if not validate_project_key(key):
        output_error(
            f"Invalid project key: '{key}'. Use lowercase letters, digits, '-' or '_'.",
            "INVALID_INPUT",
            is_json,
        )
    return key


def require_date(value: str | None, option: str, is_json: bool) -> str | None:
    """Validate an optional ``YYYY-MM-DD`` option value."""
    if value is not None and not is_valid_date(value):
        output_error(f"Invalid date for {option}: '{value}'. Expected YYYY-MM-DD.", "INVALID_INPUT", is_json)
    return value


def require_timestamp(value: str | None, is_json: bool) -> str | None:
    """Validate an optional ``--at`` timestamp (RFC 3339)."""
    if value is not None and parse_ts(value) is None:
        output_error(
            f"Invalid timestamp for --at: '{value}'. Expected e.g. 2024-01-01T09:00:00Z.",
            "INVALID_INPUT",
            is_json,
        )
    return value


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(
    *,
    data: object,
    human_message: str,
    quiet_value: str,
    is_json: bool,
    is_quiet: bool,
) -> None:
    """Print success result in the appropriate format."""
    if is_json:
        click.echo(json_envelope(True, data=data))
    elif is_quiet:
        click.echo(quiet_value)
    else:
        click.echo(human_message)


# ---------------------------------------------------------------------------
# Option decorators
# ---------------------------------------------------------------------------


def common_options(f):  # noqa: ANN001, ANN201
    """Decorator adding ``--project``, ``--json`` and ``--quiet``."""
    f = click.option("--quiet", is_flag=True, help="Print only the primary ID.")(f)
    f = click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")(f)
    f = click.option(
        "--project", default=None, help="Project key (defaults to the configured project)."
    )(f)
    return f


def at_option(f):  # noqa: ANN001, ANN201
    """Decorator adding ``--at`` for backdating a recorded event."""
    return click.option(
        "--at",
        "occurred_at",
        default=None,
        help="When the change happened (RFC 3339, e.g. 2024-01-01T09:00:00Z). Defaults to now.",
    )(f)
