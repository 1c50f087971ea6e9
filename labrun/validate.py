from __future__ import annotations

from labrun.model import ActionTask, DropoffTask, MoveTask, PickupTask, WorkflowConfig


class ConfigurationError(ValueError):
    def __init__(self, issues: list[str]) -> None:
        self.issues = list(issues)
        if len(self.issues) == 1:
            msg = self.issues[0]
        else:
            msg = f"{len(self.issues)} configuration issues:\n" + "\n".join(
                f"- {i}" for i in self.issues
            )
        super().__init__(msg)


def find_configuration_issues(config: WorkflowConfig) -> list[str]:
    """List structural problems without raising.

    The timeline compiler tolerates all of these (missing dependencies count as
    0, undeclared instrument types are left out of the lane view); callers that
    want a hard failure use `validate_workflow`.
    """

    issues: list[str] = []
    instrument_types = {i.type for i in config.instruments.values()}

    for tid, task in config.tasks.items():
        if task.id != tid:
            issues.append(f"task '{tid}' has mismatched id '{task.id}'")
        if task.duration < 0:
            issues.append(f"task '{tid}' duration must be >= 0 (got {task.duration:g})")
        if task.instrument_type not in instrument_types:
            issues.append(
                f"task '{tid}' references undeclared instrument type '{task.instrument_type}'"
            )
        for dep in task.dependencies:
            if dep == tid:
                issues.append(f"task '{tid}' depends on itself")
            elif dep not in config.tasks:
                issues.append(f"task '{tid}' depends on unknown task '{dep}'")

        if isinstance(task, (PickupTask, DropoffTask)):
            if task.labware_id not in config.labware:
                issues.append(f"task '{tid}' references unknown labware '{task.labware_id}'")
        if isinstance(task, PickupTask) and task.source_task is not None:
            if task.source_task not in config.tasks:
                issues.append(
                    f"task '{tid}' source_task '{task.source_task}' is not a task"
                )
        if isinstance(task, DropoffTask) and task.destination_task not in config.tasks:
            issues.append(
                f"task '{tid}' destination_task '{task.destination_task}' is not a task"
            )
        if isinstance(task, MoveTask):
            for move in task.labware_moves:
                for ref in (move.pickup_task, move.dropoff_task):
                    if ref not in config.tasks:
                        issues.append(f"task '{tid}' moves via unknown task '{ref}'")
        if isinstance(task, ActionTask):
            for lid in task.required_labware:
                if lid not in config.labware:
                    issues.append(f"task '{tid}' requires unknown labware '{lid}'")

    for lid, lw in config.labware.items():
        if lw.starting_location.instrument_id not in config.instruments:
            issues.append(
                f"labware '{lid}' starts on unknown instrument "
                f"'{lw.starting_location.instrument_id}'"
            )

    for iid, inst in config.instruments.items():
        if inst.capacity < 1:
            issues.append(f"instrument '{iid}' capacity must be >= 1 (got {inst.capacity})")

    return issues


def validate_workflow(config: WorkflowConfig) -> None:
    issues = find_configuration_issues(config)
    if issues:
        raise ConfigurationError(issues)
