from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from labrun.client import CommandFailure, RunManagerClient
from labrun.io import (
    load_workflow_config,
    projection_to_json,
    write_summary_json,
    write_timeline_csv,
)
from labrun.log import configure_logging
from labrun.metrics import summarize_timeline
from labrun.projection import project
from labrun.timeline import CyclicDependencyError, compile_timeline
from labrun.validate import ConfigurationError, find_configuration_issues, validate_workflow


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="labrun", description="Lab run timeline tools")
    p.add_argument("--api-url", required=False, help="Run manager base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    tl = sub.add_parser("timeline", help="Compile a workflow into a task timeline")
    tl.add_argument("--workflow", required=True, type=Path)
    tl.add_argument("--out-summary", required=True, type=Path)
    tl.add_argument("--out-tasks", required=False, type=Path)
    tl.add_argument(
        "--strict",
        action="store_true",
        help="Fail on configuration issues instead of tolerating them",
    )

    val = sub.add_parser("validate", help="Report workflow configuration issues")
    val.add_argument("--workflow", required=True, type=Path)

    proj = sub.add_parser("project", help="Project task states at an elapsed time")
    proj.add_argument("--workflow", required=True, type=Path)
    proj.add_argument("--at", required=True, type=float, help="Seconds since run start")

    run = sub.add_parser("run", help="Send a run command to the run manager")
    run.add_argument("action", choices=["pause", "resume", "stop", "show"])
    run.add_argument("run_id")

    task = sub.add_parser("task", help="Send a task command to the run manager")
    task.add_argument("action", choices=["skip", "retry"])
    task.add_argument("run_id")
    task.add_argument("task_id")
    return p


def _compile(path: Path, *, strict: bool):
    config = load_workflow_config(path)
    if strict:
        validate_workflow(config)
    return compile_timeline(config)


def main(argv: list[str] | None = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)
    configure_logging(stream=sys.stderr)

    if args.cmd == "timeline":
        try:
            timeline = _compile(args.workflow, strict=args.strict)
        except (CyclicDependencyError, ConfigurationError) as e:
            sys.stderr.write(f"error: {e}\n")
            return 2
        write_summary_json(args.out_summary, summarize_timeline(timeline))
        if args.out_tasks:
            write_timeline_csv(args.out_tasks, timeline)
        return 0

    if args.cmd == "validate":
        issues = find_configuration_issues(load_workflow_config(args.workflow))
        for issue in issues:
            sys.stdout.write(f"{issue}\n")
        if not issues:
            sys.stdout.write("OK\n")
        return 1 if issues else 0

    if args.cmd == "project":
        try:
            timeline = _compile(args.workflow, strict=False)
        except CyclicDependencyError as e:
            sys.stderr.write(f"error: {e}\n")
            return 2
        at = max(0.0, min(float(args.at), timeline.total_duration))
        projection = project(timeline, at)
        sys.stdout.write(json.dumps(projection_to_json(timeline, projection), indent=2) + "\n")
        return 0

    if args.cmd in ("run", "task"):
        with RunManagerClient(base_url=args.api_url) as client:
            try:
                if args.cmd == "run" and args.action == "show":
                    r = client.get_run(args.run_id)
                    sys.stdout.write(
                        json.dumps(
                            {
                                "id": r.id,
                                "workflow_id": r.workflow_id,
                                "workcell_id": r.workcell_id,
                                "state": r.state.value,
                                "created_at": r.created_at,
                                "updated_at": r.updated_at,
                            },
                            indent=2,
                        )
                        + "\n"
                    )
                elif args.cmd == "run":
                    client.issue(args.action, args.run_id)
                    sys.stdout.write(f"{args.action} requested for run {args.run_id}\n")
                else:
                    client.issue(f"{args.action}_task", args.run_id, args.task_id)
                    sys.stdout.write(
                        f"{args.action} requested for task {args.task_id} of run {args.run_id}\n"
                    )
            except CommandFailure as e:
                sys.stderr.write(f"error: {e}\n")
                return 1
        return 0

    raise AssertionError(f"Unhandled command: {args.cmd}")
