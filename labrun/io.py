from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from labrun.model import WorkflowConfig
from labrun.projection import Projection
from labrun.types import Timeline


def load_workflow_config(path: Path) -> WorkflowConfig:
    """Read a workflow JSON file.

    Accepts either a bare config (`{"tasks": ..., "instruments": ...}`) or an
    API workflow envelope with the config under `"config"`.
    """

    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict) and "config" in raw and "tasks" not in raw:
        raw = raw["config"]
    return WorkflowConfig.from_json(raw)


def write_workflow_config(path: Path, config: WorkflowConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_json(), indent=2), encoding="utf-8")


def write_summary_json(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2, sort_keys=True), encoding="utf-8")


def projection_to_json(timeline: Timeline, projection: Projection) -> dict[str, Any]:
    return {
        "current_time": projection.current_time,
        "total_duration": timeline.total_duration,
        "progress_percent": projection.progress_percent,
        "task_stats": {s.value: n for s, n in projection.task_stats.items()},
        "instrument_utilization": dict(projection.instrument_utilization),
        "tasks": {t.id: t.state.value for t in timeline.tasks},
    }


def write_timeline_csv(path: Path, timeline: Timeline) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(
            [
                "task_id",
                "kind",
                "instrument_type",
                "start",
                "end",
                "duration",
                "dependencies",
                "details",
            ]
        )
        for t in timeline.tasks:
            w.writerow(
                [
                    t.id,
                    t.kind.value,
                    t.instrument_type,
                    t.start,
                    t.end,
                    t.duration,
                    ";".join(t.dependencies),
                    t.details,
                ]
            )
