from __future__ import annotations

from typing import Any

from labrun.projection import lane_utilization
from labrun.types import Timeline, TimelineTask


def critical_path(timeline: Timeline) -> list[str]:
    """Walk back from the last-finishing task through the binding dependencies.

    At each step the predecessor is the dependency whose end equals the current
    task's start (ties broken by task id), so the returned chain accounts for the
    whole makespan.
    """

    if not timeline.tasks:
        return []

    by_id = {t.id: t for t in timeline.tasks}
    cur: TimelineTask | None = max(timeline.tasks, key=lambda t: (t.end, t.id))
    path: list[str] = []
    while cur is not None:
        path.append(cur.id)
        binding = [
            by_id[d]
            for d in cur.dependencies
            if d in by_id and by_id[d].end == cur.start
        ]
        cur = max(binding, key=lambda t: t.id) if binding else None

    path.reverse()
    return path


def lane_busy_seconds(timeline: Timeline) -> dict[str, float]:
    return {lane.id: float(sum(t.duration for t in lane.tasks)) for lane in timeline.lanes}


def summarize_timeline(timeline: Timeline) -> dict[str, Any]:
    busy = lane_busy_seconds(timeline)
    return {
        "total_duration": timeline.total_duration,
        "task_count": len(timeline.tasks),
        "lanes": [
            {
                "id": lane.id,
                "name": lane.name,
                "tasks": [t.id for t in lane.tasks],
                "busy_seconds": busy[lane.id],
                "utilization_percent": lane_utilization(lane, timeline.total_duration),
            }
            for lane in timeline.lanes
        ],
        "unassigned_tasks": list(timeline.unassigned),
        "critical_path": critical_path(timeline),
    }
