"""ULID generation and validation."""

from __future__ import annotations

import re

from ulid import ULID

# Crockford Base32 alphabet: 0-9 A-Z excluding I, L, O, U
_CROCKFORD_B32_RE = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$", re.IGNORECASE)

# Project keys double as directory names.
_PROJECT_KEY_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")


def generate_task_id() -> str:
    """Generate a new task ID with the task_ prefix."""
    return f"task_{ULID()}"


def generate_event_id() -> str:
    """Generate a new event ID with the ev_ prefix."""
    return f"ev_{ULID()}"


def generate_milestone_id() -> str:
    """Generate a new milestone ID with the ms_ prefix."""
    return f"ms_{ULID()}"


def validate_id(id_str: str, expected_prefix: str) -> bool:
    """Validate a ``<prefix>_<ulid>`` identifier.

    The ULID portion must be exactly 26 characters of valid Crockford
    Base32 (0-9, A-Z excluding I, L, O, U -- case insensitive).
    """
    if not isinstance(id_str, str) or not isinstance(expected_prefix, str):
        return False

    parts = id_str.split("_", maxsplit=1)
    if len(parts) != 2:
        return False

    prefix, ulid_part = parts
    if prefix != expected_prefix:
        return False

    return bool(_CROCKFORD_B32_RE.match(ulid_part))


def validate_project_key(key: str) -> bool:
    """Return ``True`` if *key* is a usable project key (lowercase, dir-safe)."""
    return isinstance(key, str) and bool(_PROJECT_KEY_RE.match(key))
