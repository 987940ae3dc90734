"""Shared read helpers for event logs and JSON rows."""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def read_jsonl(path: Path) -> list[dict]:
    """Read every JSON object from a JSONL file, in file order.

    Returns an empty list if the file does not exist.  Blank, corrupt or
    non-object lines are skipped.
    """
    records: list[dict] = []
    if not path.exists():
        return records
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("skipping corrupt line %d in %s", lineno, path)
            continue
        if isinstance(record, dict):
            records.append(record)
    return records


def read_json_dir(directory: Path) -> list[dict]:
    """Load every ``*.json`` object in *directory*, sorted by file name."""
    rows: list[dict] = []
    if not directory.is_dir():
        return rows
    for f in sorted(directory.glob("*.json")):
        try:
            row = json.loads(f.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            logger.debug("skipping unreadable row %s", f)
            continue
        if isinstance(row, dict):
            rows.append(row)
    return rows


def read_json(path: Path) -> dict | None:
    """Load a single JSON object, or ``None`` if missing or unreadable."""
    try:
        row = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return None
    return row if isinstance(row, dict) else None
