"""CLI entry point and commands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from burndown.core.config import default_config, serialize_config
from burndown.core.ids import validate_project_key
from burndown.storage.fs import (
    BURNDOWN_DIR,
    atomic_write,
    ensure_burndown_dirs,
    ensure_project_dirs,
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine and store activity to stderr.")
def cli(verbose: bool) -> None:
    """Burndown: daily burndown reports replayed from a task event log."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option(
    "--path",
    "target_path",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Directory to initialize in (defaults to current directory).",
)
@click.option(
    "--project",
    default=None,
    help="Default project key (lowercase letters, digits, '-' or '_').",
)
def init(target_path: str, project: str | None) -> None:
    """Initialize a new .burndown/ store."""
    root = Path(target_path)
    burndown_dir = root / BURNDOWN_DIR

    # Idempotency: if .burndown/ already exists as a directory, skip
    if burndown_dir.is_dir():
        click.echo(f"Burndown already initialized in {BURNDOWN_DIR}/")
        return

    if burndown_dir.exists():
        raise click.ClickException(
            f"Cannot initialize: '{BURNDOWN_DIR}' exists but is not a directory. "
            "Remove it and try again."
        )

    config = default_config()
    if project is not None:
        if not validate_project_key(project):
            raise click.ClickException(
                f"Invalid project key: '{project}'. "
                "Use lowercase letters, digits, '-' or '_'."
            )
        config["default_project"] = project

    ensure_burndown_dirs(root)
    ensure_project_dirs(burndown_dir, config["default_project"])
    atomic_write(burndown_dir / "config.json", serialize_config(config))

    click.echo(f"Initialized empty burndown store in {BURNDOWN_DIR}/")
    click.echo(f"Default project: {config['default_project']}")


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------
from burndown.cli import record_cmds as _record_cmds  # noqa: E402, F401
from burndown.cli import report_cmds as _report_cmds  # noqa: E402, F401

if __name__ == "__main__":
    cli()
