from __future__ import annotations

import pytest

from labrun.model import RunState
from labrun.projection import Projection
from labrun.tasks import TaskKind
from labrun.types import TaskState, TimelineTask
from labrun_ui.run_view_model import (
    control_state,
    format_progress,
    format_task_stats,
    format_task_tooltip,
    operation_label,
    pack_tracks,
)


def _t(tid: str, start: float, end: float) -> TimelineTask:
    return TimelineTask(
        id=tid,
        kind=TaskKind.ACTION,
        start=start,
        end=end,
        instrument_type="X",
        dependencies=(),
    )


def test_running_shows_pause_and_stop_only() -> None:
    cs = control_state(RunState.RUNNING, busy=False)
    assert (cs.pause_visible, cs.stop_visible, cs.resume_visible) == (True, True, False)
    assert cs.enabled and cs.task_actions_enabled


def test_paused_shows_resume_only() -> None:
    cs = control_state(RunState.PAUSED, busy=False)
    assert (cs.pause_visible, cs.stop_visible, cs.resume_visible) == (False, False, True)
    assert cs.task_actions_enabled


@pytest.mark.parametrize(
    "state",
    [None, RunState.STARTING, RunState.PAUSING, RunState.STOPPED, RunState.COMPLETED],
)
def test_other_states_hide_run_controls(state) -> None:
    cs = control_state(state, busy=False)
    assert not (cs.pause_visible or cs.stop_visible or cs.resume_visible)
    assert not cs.task_actions_enabled


def test_busy_disables_everything() -> None:
    cs = control_state(RunState.RUNNING, busy=True)
    assert cs.pause_visible
    assert not cs.enabled
    assert not cs.task_actions_enabled


def test_labels_and_formatting() -> None:
    assert operation_label("skip_task") == "Skip task"
    assert operation_label("whatever") == "whatever"

    p = Projection(
        current_time=7.0,
        task_stats={
            TaskState.PENDING: 0,
            TaskState.RUNNING: 1,
            TaskState.COMPLETED: 2,
            TaskState.FAILED: 0,
            TaskState.SKIPPED: 0,
        },
        instrument_utilization={"X": 150},
        progress_percent=70,
    )
    assert format_progress(p, 10.0) == "7s / 10s  (70%)"
    assert format_task_stats(p) == (
        "Running: 1  Completed: 2  Failed: 0  Skipped: 0  Pending: 0"
    )


def test_tooltip_lists_timing_and_dependencies() -> None:
    t = TimelineTask(
        id="lh",
        kind=TaskKind.ACTION,
        start=15,
        end=30,
        instrument_type="B",
        dependencies=("d1", "d2"),
        details="liquid_handling (15s)",
        state=TaskState.RUNNING,
    )
    text = format_task_tooltip(t)
    assert text.splitlines()[0] == "lh"
    assert "Type: action" in text
    assert "State: RUNNING" in text
    assert "Start: 15s" in text
    assert "Duration: 15s" in text
    assert "Dependencies: d1, d2" in text


def test_pack_tracks_separates_overlaps() -> None:
    tracks = pack_tracks([_t("a", 0, 5), _t("b", 0, 5), _t("c", 5, 10), _t("d", 2, 3)])
    assert [[t.id for t in tr] for tr in tracks] == [["a", "c"], ["b"], ["d"]]
    assert pack_tracks([]) == []
