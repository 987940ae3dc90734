"""Default config generation and validation."""

from __future__ import annotations

import json
from typing import TypedDict


class BurndownConfig(TypedDict, total=False):
    schema_version: int
    default_project: str
    reporting_utc_offset_hours: int
    done_status: str
    default_status: str
    due_fallback_days: int
    project_scope_name: str


def default_config() -> BurndownConfig:
    """Return the default configuration.

    The returned dict, when serialized with
    ``json.dumps(data, sort_keys=True, indent=2) + "\\n"``,
    produces the canonical default config.json.
    """
    return {
        "schema_version": 1,
        "default_project": "default",
        "reporting_utc_offset_hours": 9,
        "done_status": "done",
        "default_status": "backlog",
        "due_fallback_days": 14,
        "project_scope_name": "Whole project",
    }


def serialize_config(config: BurndownConfig | dict[str, object]) -> str:
    """Serialize a config dict to the canonical JSON format."""
    return json.dumps(config, sort_keys=True, indent=2) + "\n"


def load_config(raw: str) -> BurndownConfig:
    """Parse a JSON config string, filling in defaults for absent keys.

    This is a pure function (no I/O).  The CLI layer reads the file
    and passes the raw string here.

    Raises:
        ValueError: If *raw* is not a JSON object.
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("config must be a JSON object")
    config = default_config()
    config.update(data)
    return config


def validate_config(config: dict) -> list[str]:
    """Return a list of problems with *config* (empty when valid)."""
    problems: list[str] = []

    offset = config.get("reporting_utc_offset_hours")
    if not isinstance(offset, int) or isinstance(offset, bool) or not -12 <= offset <= 14:
        problems.append("reporting_utc_offset_hours must be an integer between -12 and 14")

    fallback = config.get("due_fallback_days")
    if not isinstance(fallback, int) or isinstance(fallback, bool) or fallback < 0:
        problems.append("due_fallback_days must be a non-negative integer")

    for key in ("done_status", "default_status", "project_scope_name", "default_project"):
        value = config.get(key)
        if not isinstance(value, str) or not value:
            problems.append(f"{key} must be a non-empty string")

    return problems
