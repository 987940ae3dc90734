"""Tests for the daily aggregator."""

from __future__ import annotations

import copy

import pytest

from burndown.core.aggregate import (
    aggregate,
    bucket_events_by_day,
    ideal_remaining,
    ideal_series,
    summarize_state,
)

START = "2024-01-01"
END = "2024-01-05"
TODAY = "2024-02-01"


def _state(**tasks: tuple[bool, str]) -> dict:
    return {tid: {"in_scope": inside, "status": status} for tid, (inside, status) in tasks.items()}


def _series(snapshots: list[dict], key: str) -> list[int]:
    return [s[key] for s in snapshots]


class TestSummarizeState:
    def test_counts_only_in_scope(self) -> None:
        state = _state(a=(True, "backlog"), b=(True, "done"), c=(False, "backlog"))
        assert summarize_state(state) == {"total": 2, "remaining": 1, "completed": 1}

    def test_custom_done_status(self) -> None:
        state = _state(a=(True, "closed"), b=(True, "done"))
        assert summarize_state(state, done_status="closed")["completed"] == 1


class TestWalk:
    def test_one_snapshot_per_day_in_order(self) -> None:
        snaps = aggregate(_state(a=(True, "backlog")), [], "m1", START, END, today=TODAY)
        assert [s["date"] for s in snaps] == [
            "2024-01-01",
            "2024-01-02",
            "2024-01-03",
            "2024-01-04",
            "2024-01-05",
        ]

    def test_stops_at_today(self) -> None:
        snaps = aggregate(_state(a=(True, "backlog")), [], "m1", START, END, today="2024-01-03")
        assert snaps[-1]["date"] == "2024-01-03"
        assert len(snaps) == 3

    def test_today_before_start_yields_nothing(self) -> None:
        assert aggregate(_state(), [], "m1", START, END, today="2023-12-31") == []

    def test_quiet_days_conserve_totals(self) -> None:
        state = _state(a=(True, "backlog"), b=(True, "done"), c=(True, "review"))
        snaps = aggregate(state, [], "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [2] * 5
        assert _series(snaps, "completed") == [1] * 5
        assert _series(snaps, "added") == [0] * 5
        assert _series(snaps, "reopened") == [0] * 5

    def test_input_state_not_modified(self, make_event) -> None:
        state = _state(a=(True, "backlog"))
        before = copy.deepcopy(state)
        events = [make_event("status_changed", "a", "2024-01-02", before={"status": "backlog"}, after={"status": "done"})]
        aggregate(state, events, "m1", START, END, today=TODAY)
        assert state == before


class TestCompletion:
    def test_completion_and_reopen_symmetry(self, make_event) -> None:
        state = _state(a=(True, "backlog"), b=(True, "backlog"))
        events = [
            make_event("status_changed", "a", "2024-01-02", before={"status": "backlog"}, after={"status": "done"}),
            make_event("status_changed", "a", "2024-01-04", before={"status": "done"}, after={"status": "in_progress"}),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [2, 1, 1, 2, 2]
        assert _series(snaps, "completed") == [0, 1, 1, 0, 0]
        assert _series(snaps, "reopened") == [0, 0, 0, 1, 0]

    def test_non_done_transitions_do_not_count(self, make_event) -> None:
        state = _state(a=(True, "backlog"))
        events = [make_event("status_changed", "a", "2024-01-02", before={"status": "backlog"}, after={"status": "review"})]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [1] * 5

    def test_out_of_scope_status_tracked_for_later_entry(self, make_event) -> None:
        state = _state(a=(False, "backlog"))
        events = [
            make_event("status_changed", "a", "2024-01-02", before={"status": "backlog"}, after={"status": "done"}),
            make_event("updated", "a", "2024-01-03", before={"milestone_id": None}, after={"milestone_id": "m1"}),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        # Joins already done: neither added nor remaining.
        assert _series(snaps, "remaining") == [0] * 5
        assert _series(snaps, "added") == [0] * 5
        assert _series(snaps, "completed") == [0] * 5

    def test_missing_before_status_uses_tracked_status(self, make_event) -> None:
        state = _state(a=(True, "done"))
        events = [make_event("status_changed", "a", "2024-01-02", after={"status": "done"})]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "completed") == [1] * 5

    def test_malformed_after_is_noop(self, make_event) -> None:
        state = _state(a=(True, "done"))
        events = [make_event("status_changed", "a", "2024-01-02", before={"status": "done"}, after=None)]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "reopened") == [0] * 5
        assert _series(snaps, "completed") == [1] * 5


class TestScopeChanges:
    def test_created_in_scope_adds(self, make_event) -> None:
        events = [
            make_event("created", "a", "2024-01-02", after={"status": "backlog", "milestone_id": "m1"}),
            make_event("created", "b", "2024-01-02", after={"status": "backlog", "milestone_id": "m2"}),
        ]
        snaps = aggregate(_state(), events, "m1", START, END, today=TODAY)
        assert _series(snaps, "added") == [0, 1, 0, 0, 0]
        assert _series(snaps, "remaining") == [0, 1, 1, 1, 1]

    def test_created_done_joins_without_adding(self, make_event) -> None:
        events = [make_event("created", "a", "2024-01-02", after={"status": "done", "milestone_id": "m1"})]
        snaps = aggregate(_state(), events, "m1", START, END, today=TODAY)
        assert _series(snaps, "added") == [0] * 5
        assert _series(snaps, "remaining") == [0] * 5

    def test_duplicate_created_counted_once(self, make_event) -> None:
        events = [
            make_event("created", "a", "2024-01-02", after={"milestone_id": "m1"}),
            make_event("created", "a", "2024-01-03", after={"milestone_id": "m1"}),
        ]
        snaps = aggregate(_state(), events, "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [0, 1, 1, 1, 1]

    def test_project_mode_created_always_adds(self, make_event) -> None:
        events = [make_event("created", "a", "2024-01-02", after={"milestone_id": None})]
        snaps = aggregate(_state(), events, None, START, END, today=TODAY)
        assert _series(snaps, "added") == [0, 1, 0, 0, 0]

    def test_exit_drops_remaining_immediately(self, make_event) -> None:
        state = _state(a=(True, "in_progress"), b=(True, "backlog"))
        events = [
            make_event("updated", "a", "2024-01-03", before={"milestone_id": "m1"}, after={"milestone_id": "m2"}),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [2, 2, 1, 1, 1]
        assert _series(snaps, "completed") == [0] * 5

    def test_done_task_exit_leaves_totals(self, make_event) -> None:
        state = _state(a=(True, "done"))
        events = [
            make_event("updated", "a", "2024-01-03", before={"milestone_id": "m1"}, after={"milestone_id": None}),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [0] * 5
        assert _series(snaps, "completed") == [1] * 5

    def test_exit_of_non_member_is_ignored(self, make_event) -> None:
        state = _state(a=(True, "backlog"), b=(False, "backlog"))
        events = [
            make_event("updated", "b", "2024-01-02", before={"milestone_id": "m1"}, after={"milestone_id": None}),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [1] * 5

    def test_enter_then_leave_same_day(self, make_event) -> None:
        state = _state(a=(False, "backlog"))
        events = [
            make_event("updated", "a", "2024-01-02", before={"milestone_id": None}, after={"milestone_id": "m1"}),
            make_event("updated", "a", at="2024-01-02T05:00:00Z", before={"milestone_id": "m1"}, after={"milestone_id": None}),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert snaps[1]["added"] == 1
        assert _series(snaps, "remaining") == [0] * 5

    def test_project_mode_ignores_updates(self, make_event) -> None:
        state = _state(a=(True, "backlog"))
        events = [
            make_event("updated", "a", "2024-01-02", before={"milestone_id": "m1"}, after={"milestone_id": "m2"}),
        ]
        snaps = aggregate(state, events, None, START, END, today=TODAY)
        assert _series(snaps, "remaining") == [1] * 5

    def test_deleted_member_drops_remaining(self, make_event) -> None:
        state = _state(a=(True, "backlog"), b=(True, "done"))
        events = [
            make_event("deleted", "a", "2024-01-03"),
            make_event("deleted", "b", "2024-01-04"),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "remaining") == [1, 1, 0, 0, 0]
        assert _series(snaps, "completed") == [1] * 5

    def test_status_change_after_exit_is_not_counted(self, make_event) -> None:
        state = _state(a=(True, "backlog"))
        events = [
            make_event("deleted", "a", "2024-01-02"),
            make_event("status_changed", "a", "2024-01-03", before={"status": "backlog"}, after={"status": "done"}),
        ]
        snaps = aggregate(state, events, "m1", START, END, today=TODAY)
        assert _series(snaps, "completed") == [0] * 5
        assert _series(snaps, "remaining") == [1, 0, 0, 0, 0]


class TestClamping:
    def test_negative_totals_clamped(self, make_event) -> None:
        # Joined already done, then reopened: completed would dip below zero.
        events = [
            make_event("created", "a", "2024-01-02", after={"status": "done", "milestone_id": "m1"}),
            make_event("status_changed", "a", "2024-01-03", before={"status": "done"}, after={"status": "backlog"}),
        ]
        snaps = aggregate(_state(), events, "m1", START, END, today=TODAY)
        assert all(s["completed"] >= 0 and s["remaining"] >= 0 for s in snaps)
        assert snaps[2]["reopened"] == 1
        assert snaps[2]["completed"] == 0


class TestBucketing:
    def test_pre_start_events_dropped(self, make_event) -> None:
        events = [
            make_event("created", "a", "2023-12-31"),
            make_event("created", "b", "2024-01-01"),
            make_event("created", "c", at="2024-01-01T20:00:00Z"),
        ]
        buckets = bucket_events_by_day(events, START)
        assert [e["target_id"] for e in buckets["2024-01-01"]] == ["b"]
        assert [e["target_id"] for e in buckets["2024-01-02"]] == ["c"]


class TestIdealLine:
    def test_linear_from_total_to_zero(self) -> None:
        assert ideal_remaining(4, START, END, "2024-01-01") == 4.0
        assert ideal_remaining(4, START, END, "2024-01-03") == 2.0
        assert ideal_remaining(4, START, END, "2024-01-05") == 0.0

    def test_clamped_outside_window(self) -> None:
        assert ideal_remaining(4, START, END, "2024-01-09") == 0.0
        assert ideal_remaining(4, START, END, "2023-12-30") == 4.0

    def test_single_day_window(self) -> None:
        assert ideal_remaining(3, START, START, START) == 3.0

    @pytest.mark.parametrize("total", [0, 1, 7])
    def test_series_aligned_with_snapshots(self, total: int) -> None:
        result = {
            "start_date": START,
            "end_date": END,
            "total_tasks_at_start": total,
            "daily_snapshots": [{"date": "2024-01-01"}, {"date": "2024-01-02"}],
        }
        series = ideal_series(result)
        assert [d for d, _ in series] == ["2024-01-01", "2024-01-02"]
        assert series[0][1] == float(total)
