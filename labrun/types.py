from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from labrun.tasks import TaskKind


class TaskState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    # Only reachable through run-manager signals, never by time projection.
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass
class TimelineTask:
    id: str
    kind: TaskKind
    start: float
    end: float
    instrument_type: str
    dependencies: tuple[str, ...]
    details: str = ""
    # The only field refreshed after compilation.
    state: TaskState = TaskState.PENDING

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class InstrumentLane:
    id: str
    name: str
    tasks: list[TimelineTask] = field(default_factory=list)


@dataclass(frozen=True)
class Timeline:
    tasks: tuple[TimelineTask, ...]
    lanes: tuple[InstrumentLane, ...]
    total_duration: float
    # Task ids whose instrument type has no declared lane.
    unassigned: tuple[str, ...] = ()

    def task(self, task_id: str) -> TimelineTask | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def lane(self, lane_id: str) -> InstrumentLane | None:
        for lane in self.lanes:
            if lane.id == lane_id:
                return lane
        return None
