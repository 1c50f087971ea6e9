from __future__ import annotations

import pytest

from labrun.model import WorkflowConfig
from labrun.projection import (
    advance_clock,
    count_states,
    lane_utilization,
    project,
    project_state,
    round_half_up,
)
from labrun.timeline import compile_timeline
from labrun.types import InstrumentLane, TaskState, TimelineTask
from labrun.tasks import TaskKind

_ORDER = {TaskState.PENDING: 0, TaskState.RUNNING: 1, TaskState.COMPLETED: 2}


def _abc_timeline():
    tasks = {
        "A": {"id": "A", "instrument_type": "X", "duration": 5, "dependencies": []},
        "B": {"id": "B", "instrument_type": "X", "duration": 5, "dependencies": []},
        "C": {"id": "C", "instrument_type": "X", "duration": 5, "dependencies": ["A", "B"]},
    }
    return compile_timeline(
        WorkflowConfig.from_json(
            {"tasks": tasks, "instruments": {"x": {"id": "x", "type": "X"}}, "labware": {}}
        )
    )


def _task(start: float, end: float, tid: str = "t") -> TimelineTask:
    return TimelineTask(
        id=tid,
        kind=TaskKind.ACTION,
        start=start,
        end=end,
        instrument_type="X",
        dependencies=(),
    )


def test_state_at_seven_seconds() -> None:
    tl = _abc_timeline()
    p = project(tl, 7)

    assert tl.task("A").state is TaskState.COMPLETED
    assert tl.task("B").state is TaskState.COMPLETED
    assert tl.task("C").state is TaskState.RUNNING
    assert p.task_stats[TaskState.COMPLETED] == 2
    assert p.task_stats[TaskState.RUNNING] == 1
    assert p.task_stats[TaskState.PENDING] == 0
    assert p.progress_percent == 70


def test_boundaries_are_inclusive_at_start_and_end() -> None:
    t = _task(5, 10)
    assert project_state(t, 4.999) is TaskState.PENDING
    assert project_state(t, 5) is TaskState.RUNNING
    assert project_state(t, 10) is TaskState.COMPLETED


def test_zero_duration_task_completes_at_its_start() -> None:
    t = _task(3, 3)
    assert project_state(t, 2) is TaskState.PENDING
    assert project_state(t, 3) is TaskState.COMPLETED


def test_states_only_move_forward(example_config) -> None:
    tl = compile_timeline(example_config)
    last = {t.id: TaskState.PENDING for t in tl.tasks}
    for second in range(0, int(tl.total_duration) + 1):
        project(tl, second)
        for t in tl.tasks:
            assert _ORDER[t.state] >= _ORDER[last[t.id]]
            last[t.id] = t.state
    assert all(s is TaskState.COMPLETED for s in last.values())


def test_projection_does_not_move_tasks(example_config) -> None:
    tl = compile_timeline(example_config)
    before = [(t.start, t.end) for t in tl.tasks]
    project(tl, 23)
    assert [(t.start, t.end) for t in tl.tasks] == before


def test_example_utilization(example_config) -> None:
    tl = compile_timeline(example_config)
    p = project(tl, 0)
    assert p.instrument_utilization == {"A": 100, "B": 30, "C": 10}
    assert all(0 <= v <= 100 for v in p.instrument_utilization.values())


def test_perfect_tiling_is_full_utilization() -> None:
    lane = InstrumentLane(id="X", name="Instrument X", tasks=[_task(0, 4, "a"), _task(4, 10, "b")])
    assert lane_utilization(lane, 10) == 100


def test_overlapping_tasks_exceed_full_utilization() -> None:
    tl = _abc_timeline()
    assert project(tl, 0).instrument_utilization == {"X": 150}


def test_zero_total_duration_has_no_division_by_zero() -> None:
    lane = InstrumentLane(id="X", name="Instrument X", tasks=[_task(0, 0)])
    assert lane_utilization(lane, 0) == 0

    empty = compile_timeline(
        WorkflowConfig.from_json(
            {"tasks": {}, "instruments": {"x": {"id": "x", "type": "X"}}, "labware": {}}
        )
    )
    p = project(empty, 0)
    assert p.progress_percent == 0
    assert p.instrument_utilization == {"X": 0}
    assert set(p.task_stats) == set(TaskState)
    assert sum(p.task_stats.values()) == 0


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.0, 0), (2.5, 3), (3.5, 4), (33.333, 33), (66.666, 67), (149.5, 150)],
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected


def test_overrides_take_precedence_over_time() -> None:
    tl = _abc_timeline()
    p = project(tl, 2, overrides={"C": TaskState.SKIPPED, "A": TaskState.FAILED})

    assert tl.task("A").state is TaskState.FAILED
    assert tl.task("B").state is TaskState.RUNNING
    assert tl.task("C").state is TaskState.SKIPPED
    assert p.task_stats[TaskState.FAILED] == 1
    assert p.task_stats[TaskState.SKIPPED] == 1

    # Dropping the override hands the task back to the clock.
    project(tl, 2)
    assert tl.task("C").state is TaskState.PENDING


def test_advance_clock_steps_one_second_and_freezes_at_total() -> None:
    assert advance_clock(0, 10) == 1
    assert advance_clock(9, 10) == 10
    assert advance_clock(9.5, 10) == 10
    assert advance_clock(10, 10) == 10
    assert advance_clock(0, 0) == 0


def test_count_states_accepts_any_iterable_and_reports_every_state(example_config) -> None:
    tl = compile_timeline(example_config)
    tl.tasks[0].state = TaskState.FAILED
    stats = count_states(t for t in tl.tasks)
    assert set(stats) == set(TaskState)
    assert stats[TaskState.FAILED] == 1
    assert stats[TaskState.PENDING] == len(tl.tasks) - 1
    assert count_states([]) == {s: 0 for s in TaskState}
