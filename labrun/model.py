from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from labrun.tasks import TaskKind, classify_payload


@dataclass(frozen=True)
class LabwareLocation:
    instrument_id: str
    slot: int


@dataclass(frozen=True)
class Labware:
    id: str
    starting_location: LabwareLocation


@dataclass(frozen=True)
class TaskLabware:
    id: str
    initial_slot: int
    final_slot: int
    quantity: int = 1


@dataclass(frozen=True)
class LabwareMove:
    pickup_task: str
    dropoff_task: str


@dataclass(frozen=True)
class PickupTask:
    id: str
    instrument_type: str
    duration: float
    dependencies: tuple[str, ...]
    arguments: dict[str, Any]
    labware_id: str
    destination_slot: int
    source_task: str | None = None

    kind = TaskKind.PICKUP


@dataclass(frozen=True)
class DropoffTask:
    id: str
    instrument_type: str
    duration: float
    dependencies: tuple[str, ...]
    arguments: dict[str, Any]
    labware_id: str
    destination_task: str

    kind = TaskKind.DROPOFF


@dataclass(frozen=True)
class MoveTask:
    id: str
    instrument_type: str
    duration: float
    dependencies: tuple[str, ...]
    arguments: dict[str, Any]
    labware_moves: tuple[LabwareMove, ...]

    kind = TaskKind.MOVE


@dataclass(frozen=True)
class ActionTask:
    id: str
    instrument_type: str
    duration: float
    dependencies: tuple[str, ...]
    arguments: dict[str, Any]
    action: str = ""
    required_labware: dict[str, TaskLabware] = field(default_factory=dict)

    kind = TaskKind.ACTION


Task = Union[PickupTask, DropoffTask, MoveTask, ActionTask]


def task_from_json(task_id: str, obj: dict[str, Any]) -> Task:
    """Convert a raw task payload into its tagged variant.

    This is the only place payload shape is inspected; everything downstream
    dispatches on the variant type.
    """

    common: dict[str, Any] = {
        "id": str(obj.get("id", task_id)),
        "instrument_type": str(obj.get("instrument_type", "")),
        "duration": float(obj.get("duration", 0)),
        "dependencies": tuple(str(d) for d in obj.get("dependencies", []) or []),
        "arguments": dict(obj.get("arguments", {}) or {}),
    }

    kind = classify_payload(obj)
    if kind is TaskKind.PICKUP:
        source = obj.get("source_task")
        return PickupTask(
            **common,
            labware_id=str(obj["labware_id"]),
            destination_slot=int(obj["destination_slot"]),
            source_task=str(source) if source is not None else None,
        )
    if kind is TaskKind.DROPOFF:
        return DropoffTask(
            **common,
            labware_id=str(obj["labware_id"]),
            destination_task=str(obj["destination_task"]),
        )
    if kind is TaskKind.MOVE:
        moves = tuple(
            LabwareMove(pickup_task=str(m["pickup_task"]), dropoff_task=str(m["dropoff_task"]))
            for m in obj.get("labware_moves", [])
        )
        return MoveTask(**common, labware_moves=moves)

    required: dict[str, TaskLabware] = {}
    for lid, lw in (obj.get("required_labware") or {}).items():
        required[str(lid)] = TaskLabware(
            id=str(lw.get("id", lid)),
            initial_slot=int(lw["initial_slot"]),
            final_slot=int(lw["final_slot"]),
            quantity=int(lw.get("quantity", 1)),
        )
    action = obj.get("action")
    return ActionTask(
        **common,
        action=str(action) if action is not None else "",
        required_labware=required,
    )


def task_to_json(task: Task) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": task.id,
        "instrument_type": task.instrument_type,
        "duration": task.duration,
        "dependencies": list(task.dependencies),
        "arguments": dict(task.arguments),
    }
    if isinstance(task, PickupTask):
        out.update(
            labware_id=task.labware_id,
            destination_slot=task.destination_slot,
            source_task=task.source_task,
        )
    elif isinstance(task, DropoffTask):
        out.update(labware_id=task.labware_id, destination_task=task.destination_task)
    elif isinstance(task, MoveTask):
        out["labware_moves"] = [
            {"pickup_task": m.pickup_task, "dropoff_task": m.dropoff_task}
            for m in task.labware_moves
        ]
    else:
        out["action"] = task.action
        out["required_labware"] = {
            lid: {
                "id": lw.id,
                "initial_slot": lw.initial_slot,
                "final_slot": lw.final_slot,
                "quantity": lw.quantity,
            }
            for lid, lw in task.required_labware.items()
        }
    return out


@dataclass(frozen=True)
class WorkflowInstrument:
    id: str
    type: str
    capacity: int = 1


@dataclass(frozen=True)
class History:
    task_id: str
    instrument_id: str
    start: float
    end: float


class ConstraintType(str, Enum):
    START_TO_START = "START_TO_START"
    START_TO_END = "START_TO_END"
    END_TO_START = "END_TO_START"
    END_TO_END = "END_TO_END"


@dataclass(frozen=True)
class TimeConstraint:
    type: ConstraintType
    start_task: str
    end_task: str
    duration: float


@dataclass(frozen=True)
class InstrumentBlock:
    start_task: str
    end_task: str


@dataclass(frozen=True)
class WorkflowConfig:
    tasks: dict[str, Task]
    instruments: dict[str, WorkflowInstrument]
    labware: dict[str, Labware]
    # Carried through for the backend scheduler; the timeline compiler ignores these.
    history: dict[str, History] = field(default_factory=dict)
    time_constraints: tuple[TimeConstraint, ...] = ()
    instrument_blocks: tuple[InstrumentBlock, ...] = ()

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "WorkflowConfig":
        tasks: dict[str, Task] = {}
        for tid, t in obj.get("tasks", {}).items():
            tasks[str(tid)] = task_from_json(str(tid), t)

        instruments: dict[str, WorkflowInstrument] = {}
        for iid, i in obj.get("instruments", {}).items():
            instruments[str(iid)] = WorkflowInstrument(
                id=str(i.get("id", iid)),
                type=str(i["type"]),
                capacity=int(i.get("capacity", 1)),
            )

        labware: dict[str, Labware] = {}
        for lid, lw in obj.get("labware", {}).items():
            loc = lw["starting_location"]
            labware[str(lid)] = Labware(
                id=str(lw.get("id", lid)),
                starting_location=LabwareLocation(
                    instrument_id=str(loc["instrument_id"]),
                    slot=int(loc["slot"]),
                ),
            )

        history: dict[str, History] = {}
        for hid, h in (obj.get("history") or {}).items():
            history[str(hid)] = History(
                task_id=str(h["task_id"]),
                instrument_id=str(h["instrument_id"]),
                start=float(h["start"]),
                end=float(h["end"]),
            )

        constraints = tuple(
            TimeConstraint(
                type=ConstraintType(str(c["type"])),
                start_task=str(c["start_task"]),
                end_task=str(c["end_task"]),
                duration=float(c["duration"]),
            )
            for c in obj.get("time_constraints") or []
        )
        blocks = tuple(
            InstrumentBlock(start_task=str(b["start_task"]), end_task=str(b["end_task"]))
            for b in obj.get("instrument_blocks") or []
        )

        return WorkflowConfig(
            tasks=tasks,
            instruments=instruments,
            labware=labware,
            history=history,
            time_constraints=constraints,
            instrument_blocks=blocks,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "tasks": {tid: task_to_json(t) for tid, t in self.tasks.items()},
            "instruments": {
                iid: {"id": i.id, "type": i.type, "capacity": i.capacity}
                for iid, i in self.instruments.items()
            },
            "labware": {
                lid: {
                    "id": lw.id,
                    "starting_location": {
                        "instrument_id": lw.starting_location.instrument_id,
                        "slot": lw.starting_location.slot,
                    },
                }
                for lid, lw in self.labware.items()
            },
            "history": {
                hid: {
                    "task_id": h.task_id,
                    "instrument_id": h.instrument_id,
                    "start": h.start,
                    "end": h.end,
                }
                for hid, h in self.history.items()
            },
            "time_constraints": [
                {
                    "type": c.type.value,
                    "start_task": c.start_task,
                    "end_task": c.end_task,
                    "duration": c.duration,
                }
                for c in self.time_constraints
            ],
            "instrument_blocks": [
                {"start_task": b.start_task, "end_task": b.end_task}
                for b in self.instrument_blocks
            ],
        }


@dataclass(frozen=True)
class Workflow:
    id: str
    name: str
    config: WorkflowConfig
    created_at: str = ""
    updated_at: str = ""

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "Workflow":
        return Workflow(
            id=str(obj["id"]),
            name=str(obj.get("name", "")),
            config=WorkflowConfig.from_json(obj.get("config", {})),
            created_at=str(obj.get("created_at", "")),
            updated_at=str(obj.get("updated_at", "")),
        )


class RunState(str, Enum):
    """Externally owned run lifecycle. Read-only from this side."""

    STARTING = "STARTING"
    RUNNING = "RUNNING"
    PAUSING = "PAUSING"
    PAUSED = "PAUSED"
    RESUMING = "RESUMING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class Run:
    id: str
    workflow_id: str
    workcell_id: str
    state: RunState
    created_at: str = ""
    updated_at: str = ""

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "Run":
        return Run(
            id=str(obj["id"]),
            workflow_id=str(obj["workflow_id"]),
            workcell_id=str(obj["workcell_id"]),
            state=RunState(str(obj["state"])),
            created_at=str(obj.get("created_at", "")),
            updated_at=str(obj.get("updated_at", "")),
        )


@dataclass(frozen=True)
class TaskSchedule:
    task_id: str
    instrument_id: str
    start: float
    end: float

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "TaskSchedule":
        return TaskSchedule(
            task_id=str(obj["task_id"]),
            instrument_id=str(obj["instrument_id"]),
            start=float(obj["start"]),
            end=float(obj["end"]),
        )
