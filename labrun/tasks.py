from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from labrun.model import Task


class TaskKind(str, Enum):
    PICKUP = "pickup"
    DROPOFF = "dropoff"
    MOVE = "move"
    ACTION = "action"


def classify_payload(obj: Mapping[str, Any]) -> TaskKind:
    """Infer a task kind from which optional payload fields are present.

    Precedence when several shapes match: pickup > dropoff > move > action.
    Anything unrecognised falls back to action.
    """

    if "labware_id" in obj and "destination_slot" in obj:
        return TaskKind.PICKUP
    if "labware_id" in obj and "destination_task" in obj:
        return TaskKind.DROPOFF
    if "labware_moves" in obj:
        return TaskKind.MOVE
    return TaskKind.ACTION


def classify(task: "Task") -> TaskKind:
    return task.kind


def format_seconds(value: float) -> str:
    v = float(value)
    if v.is_integer():
        return f"{int(v)}s"
    return f"{v:g}s"


def describe(task: "Task") -> str:
    """Short display summary, e.g. ``liquid_handling (15s)`` or ``2 moves``."""

    kind = task.kind
    if kind is TaskKind.ACTION:
        name = task.action or task.id  # type: ignore[union-attr]
        return f"{name} ({format_seconds(task.duration)})"
    if kind in (TaskKind.PICKUP, TaskKind.DROPOFF):
        return f"Labware: {task.labware_id}"  # type: ignore[union-attr]
    n = len(task.labware_moves)  # type: ignore[union-attr]
    return f"{n} move" if n == 1 else f"{n} moves"
