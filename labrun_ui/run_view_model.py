from __future__ import annotations

"""Qt-free presentation helpers for the run-detail view.

Kept free of widget code so the formatting and gating rules can be tested
without a QApplication.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from labrun.model import RunState
from labrun.projection import Projection
from labrun.tasks import format_seconds
from labrun.types import TaskState, TimelineTask

OPERATION_LABELS = {
    "pause": "Pause run",
    "resume": "Resume run",
    "stop": "Stop run",
    "skip_task": "Skip task",
    "retry_task": "Retry task",
    "refresh": "Refresh run",
    "load_run": "Load run",
}


def operation_label(operation: str) -> str:
    return OPERATION_LABELS.get(operation, operation)


@dataclass(frozen=True)
class ControlState:
    pause_visible: bool
    stop_visible: bool
    resume_visible: bool
    enabled: bool
    task_actions_enabled: bool


def control_state(state: RunState | None, *, busy: bool) -> ControlState:
    """Pause/Stop only while RUNNING, Resume only while PAUSED.

    Everything is disabled while a command is in flight.
    """

    running = state is RunState.RUNNING
    paused = state is RunState.PAUSED
    return ControlState(
        pause_visible=running,
        stop_visible=running,
        resume_visible=paused,
        enabled=not busy,
        task_actions_enabled=(running or paused) and not busy,
    )


def format_task_tooltip(task: TimelineTask) -> str:
    lines = [
        task.id,
        f"Type: {task.kind.value}",
        f"State: {task.state.value}",
        f"Start: {format_seconds(task.start)}",
        f"Duration: {format_seconds(task.duration)}",
    ]
    if task.details:
        lines.append(task.details)
    if task.dependencies:
        lines.append(f"Dependencies: {', '.join(task.dependencies)}")
    return "\n".join(lines)


def format_task_stats(projection: Projection) -> str:
    s = projection.task_stats
    return (
        f"Running: {s[TaskState.RUNNING]}  Completed: {s[TaskState.COMPLETED]}  "
        f"Failed: {s[TaskState.FAILED]}  Skipped: {s[TaskState.SKIPPED]}  "
        f"Pending: {s[TaskState.PENDING]}"
    )


def format_progress(projection: Projection, total_duration: float) -> str:
    return (
        f"{format_seconds(projection.current_time)} / {format_seconds(total_duration)}"
        f"  ({projection.progress_percent}%)"
    )


def pack_tracks(tasks: Iterable[TimelineTask]) -> list[list[TimelineTask]]:
    """Greedy interval packing so overlapping tasks in a lane get separate rows."""

    tracks: list[list[TimelineTask]] = []
    track_ends: list[float] = []
    for t in sorted(tasks, key=lambda t: (t.start, t.end, t.id)):
        for i, end in enumerate(track_ends):
            if t.start >= end:
                tracks[i].append(t)
                track_ends[i] = t.end
                break
        else:
            tracks.append([t])
            track_ends.append(t.end)
    return tracks
