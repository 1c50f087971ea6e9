from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from labrun.types import InstrumentLane, TaskState, Timeline, TimelineTask


@dataclass(frozen=True)
class Projection:
    current_time: float
    task_stats: dict[TaskState, int]
    instrument_utilization: dict[str, int]
    progress_percent: int


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def project_state(task: TimelineTask, current_time: float) -> TaskState:
    if current_time >= task.end:
        return TaskState.COMPLETED
    if current_time >= task.start:
        return TaskState.RUNNING
    return TaskState.PENDING


def advance_clock(current_time: float, total_duration: float) -> float:
    """One tick of the live clock: +1 second, frozen at the makespan."""

    if current_time >= total_duration:
        return total_duration
    return min(current_time + 1.0, total_duration)


def lane_utilization(lane: InstrumentLane, total_duration: float) -> int:
    """Busy time of the lane as a percentage of the makespan.

    Not clamped: overlapping tasks on one instrument type can exceed 100.
    """

    if total_duration <= 0:
        return 0
    busy = sum(t.end - t.start for t in lane.tasks)
    return round_half_up(busy / total_duration * 100.0)


def count_states(tasks: Iterable[TimelineTask]) -> dict[TaskState, int]:
    stats = {s: 0 for s in TaskState}
    for t in tasks:
        stats[t.state] += 1
    return stats


def project(
    timeline: Timeline,
    current_time: float,
    *,
    overrides: Mapping[str, TaskState] | None = None,
) -> Projection:
    """Refresh every task's state for `current_time` and recompute aggregates.

    `overrides` carries states signalled by the run manager (FAILED, SKIPPED)
    which take precedence over the time-based state. Start/end are untouched.
    """

    overrides = overrides or {}
    for t in timeline.tasks:
        t.state = overrides.get(t.id) or project_state(t, current_time)

    total = timeline.total_duration
    progress = round_half_up(current_time / total * 100.0) if total > 0 else 0
    return Projection(
        current_time=float(current_time),
        task_stats=count_states(timeline.tasks),
        instrument_utilization={
            lane.id: lane_utilization(lane, total) for lane in timeline.lanes
        },
        progress_percent=progress,
    )
