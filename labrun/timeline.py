from __future__ import annotations

# Dependency-aware forward scheduling of a workflow's task graph.
#
# Each task starts at the latest end of its dependencies (0 if none) and runs for
# its duration. Instrument capacity is advisory: tasks sharing an instrument type
# may overlap in time.

from collections.abc import Mapping

from labrun.log import get_logger
from labrun.model import Task, WorkflowConfig
from labrun.tasks import describe
from labrun.types import InstrumentLane, TaskState, Timeline, TimelineTask

log = get_logger(__name__)

_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


class CyclicDependencyError(ValueError):
    """The dependency graph has a cycle; no timeline can be computed."""

    def __init__(self, task_id: str, cycle: tuple[str, ...]) -> None:
        self.task_id = task_id
        self.cycle = cycle
        super().__init__(
            f"cyclic dependency involving task '{task_id}': {' -> '.join(cycle)}"
        )


def schedule_times(tasks: Mapping[str, Task]) -> dict[str, tuple[float, float]]:
    """Return ``{task_id: (start, end)}`` for every task.

    Iterative depth-first traversal with three-colour marking, so deep chains do
    not exhaust the interpreter stack and cycles are reported instead of looping.
    Dependencies missing from `tasks` contribute 0 to the start time.
    """

    colour = {tid: _UNVISITED for tid in tasks}
    times: dict[str, tuple[float, float]] = {}

    for root in tasks:
        if colour[root] != _UNVISITED:
            continue

        colour[root] = _IN_PROGRESS
        stack = [(root, iter(tasks[root].dependencies))]
        while stack:
            tid, pending = stack[-1]
            descended = False
            for dep in pending:
                state = colour.get(dep)
                if state is None:
                    log.debug("missing_dependency", task=tid, dependency=dep)
                    continue
                if state == _IN_PROGRESS:
                    path = [frame[0] for frame in stack]
                    cycle = tuple(path[path.index(dep):]) + (dep,)
                    log.error("cyclic_dependency", task=dep, cycle=list(cycle))
                    raise CyclicDependencyError(dep, cycle)
                if state == _UNVISITED:
                    colour[dep] = _IN_PROGRESS
                    stack.append((dep, iter(tasks[dep].dependencies)))
                    descended = True
                    break
            if descended:
                continue

            stack.pop()
            task = tasks[tid]
            start = max(
                (times[d][1] for d in task.dependencies if d in times),
                default=0.0,
            )
            times[tid] = (start, start + max(0.0, float(task.duration)))
            colour[tid] = _DONE

    return times


def compile_timeline(config: WorkflowConfig) -> Timeline:
    """Compute start/end for every task and group tasks into instrument lanes.

    Pure: identical configs give identical timelines. Raises
    `CyclicDependencyError` if the dependency graph is not a DAG.
    """

    lanes: dict[str, InstrumentLane] = {}
    for instrument in config.instruments.values():
        if instrument.type not in lanes:
            lanes[instrument.type] = InstrumentLane(
                id=instrument.type, name=f"Instrument {instrument.type}"
            )

    times = schedule_times(config.tasks)

    timeline_tasks: list[TimelineTask] = []
    unassigned: list[str] = []
    for tid, task in config.tasks.items():
        start, end = times[tid]
        tt = TimelineTask(
            id=tid,
            kind=task.kind,
            start=start,
            end=end,
            instrument_type=task.instrument_type,
            dependencies=tuple(task.dependencies),
            details=describe(task),
            state=TaskState.PENDING,
        )
        timeline_tasks.append(tt)

        lane = lanes.get(task.instrument_type)
        if lane is None:
            unassigned.append(tid)
        else:
            lane.tasks.append(tt)

    if unassigned:
        log.warning("tasks_without_lane", tasks=unassigned)

    total = max((t.end for t in timeline_tasks), default=0.0)
    log.info(
        "timeline_compiled",
        tasks=len(timeline_tasks),
        lanes=len(lanes),
        total_duration=total,
    )
    return Timeline(
        tasks=tuple(timeline_tasks),
        lanes=tuple(lanes.values()),
        total_duration=total,
        unassigned=tuple(unassigned),
    )
