"""Burndown: daily burndown series replayed from an append-only task event log."""

from burndown.core.burndown import (
    BurndownResult,
    FetchError,
    MilestoneNotFoundError,
    compute_burndown,
)
from burndown.core.window import MissingWindowError
from burndown.storage.store import BurndownStore, FileStore, InMemoryStore

__all__ = [
    "BurndownResult",
    "BurndownStore",
    "FetchError",
    "FileStore",
    "InMemoryStore",
    "MilestoneNotFoundError",
    "MissingWindowError",
    "compute_burndown",
]
