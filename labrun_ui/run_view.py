from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from labrun.model import Run, RunState, WorkflowConfig
from labrun.projection import Projection, project
from labrun.timeline import CyclicDependencyError, compile_timeline
from labrun.types import TaskState, Timeline
from labrun.validate import find_configuration_issues
from labrun_ui.run_clock import RunClock
from labrun_ui.run_controller import CommandRequest
from labrun_ui.run_view_model import (
    control_state,
    format_progress,
    format_task_stats,
)
from labrun_ui.timeline_widget import TimelineWidget


class RunDetailView(QWidget):
    """Run header, progress, utilization and lane timeline for one run.

    The view owns its session: the compiled timeline, the externally signalled
    task overrides and the clock. Loading a new config replaces all of them.
    """

    command_requested = Signal(object)  # CommandRequest

    def __init__(self, parent: QWidget | None = None, *, tick_ms: int | None = None) -> None:
        super().__init__(parent)
        self._tick_ms = tick_ms
        self._run: Run | None = None
        self._config: WorkflowConfig | None = None
        self._timeline: Timeline | None = None
        self._projection: Projection | None = None
        self._clock: RunClock | None = None
        self._overrides: dict[str, TaskState] = {}
        self._busy = False
        self._util_bars: dict[str, QProgressBar] = {}

        self._build_ui()
        self._refresh_controls()

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(12, 12, 12, 12)
        root.setSpacing(10)

        header = QHBoxLayout()
        self._title_label = QLabel("No run loaded", self)
        self._title_label.setObjectName("run_title")
        header.addWidget(self._title_label, 1)
        self._pause_btn = QPushButton("Pause", self)
        self._resume_btn = QPushButton("Resume", self)
        self._stop_btn = QPushButton("Stop", self)
        self._pause_btn.clicked.connect(lambda: self._request("pause"))
        self._resume_btn.clicked.connect(lambda: self._request("resume"))
        self._stop_btn.clicked.connect(lambda: self._request("stop"))
        for btn in (self._pause_btn, self._resume_btn, self._stop_btn):
            header.addWidget(btn)
        root.addLayout(header)

        self._error_label = QLabel("", self)
        self._error_label.setObjectName("timeline_error")
        self._error_label.setWordWrap(True)
        self._error_label.setVisible(False)
        root.addWidget(self._error_label)

        self._issues_label = QLabel("", self)
        self._issues_label.setObjectName("config_issues")
        self._issues_label.setWordWrap(True)
        self._issues_label.setVisible(False)
        root.addWidget(self._issues_label)

        panels = QHBoxLayout()

        details = QGroupBox("Run Details", self)
        form = QFormLayout(details)
        self._state_label = QLabel("-", details)
        self._workflow_label = QLabel("-", details)
        self._workcell_label = QLabel("-", details)
        self._created_label = QLabel("-", details)
        self._updated_label = QLabel("-", details)
        form.addRow("Status", self._state_label)
        form.addRow("Workflow", self._workflow_label)
        form.addRow("Workcell", self._workcell_label)
        form.addRow("Started", self._created_label)
        form.addRow("Last updated", self._updated_label)
        panels.addWidget(details, 1)

        progress = QGroupBox("Progress", self)
        pv = QVBoxLayout(progress)
        self._progress_bar = QProgressBar(progress)
        self._progress_bar.setRange(0, 100)
        self._progress_label = QLabel("-", progress)
        self._stats_label = QLabel("-", progress)
        self._stats_label.setObjectName("task_stats")
        pv.addWidget(self._progress_label)
        pv.addWidget(self._progress_bar)
        pv.addWidget(self._stats_label)
        pv.addWidget(QLabel("Instrument utilization", progress))
        self._util_form = QFormLayout()
        pv.addLayout(self._util_form)
        panels.addWidget(progress, 1)
        root.addLayout(panels)

        tasks_row = QHBoxLayout()
        tasks_row.addWidget(QLabel("Task", self))
        self._task_select = QComboBox(self)
        self._task_select.setObjectName("task_select")
        tasks_row.addWidget(self._task_select, 1)
        self._skip_btn = QPushButton("Skip task", self)
        self._retry_btn = QPushButton("Retry task", self)
        self._skip_btn.clicked.connect(lambda: self._request_task("skip_task"))
        self._retry_btn.clicked.connect(lambda: self._request_task("retry_task"))
        tasks_row.addWidget(self._skip_btn)
        tasks_row.addWidget(self._retry_btn)
        root.addLayout(tasks_row)

        timeline_box = QGroupBox("Task Timeline", self)
        tv = QVBoxLayout(timeline_box)
        scroll = QScrollArea(timeline_box)
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self._timeline_widget = TimelineWidget(scroll)
        scroll.setWidget(self._timeline_widget)
        tv.addWidget(scroll)
        root.addWidget(timeline_box, 1)

    # Session.

    def run(self) -> Run | None:
        return self._run

    def timeline(self) -> Timeline | None:
        return self._timeline

    def projection(self) -> Projection | None:
        return self._projection

    def clock(self) -> RunClock | None:
        return self._clock

    def current_time(self) -> float:
        return self._clock.current_time() if self._clock is not None else 0.0

    def set_run(self, run: Run | None) -> None:
        previous = self._run
        self._run = run
        if (previous.id if previous else None) != (run.id if run else None):
            self._restart_session()
        if run is None:
            self._title_label.setText("No run loaded")
            for lbl in (
                self._state_label,
                self._workflow_label,
                self._workcell_label,
                self._created_label,
                self._updated_label,
            ):
                lbl.setText("-")
        else:
            self._title_label.setText(f"Run {run.id}")
            self._state_label.setText(run.state.value)
            self._workflow_label.setText(run.workflow_id)
            self._workcell_label.setText(run.workcell_id)
            self._created_label.setText(run.created_at or "-")
            self._updated_label.setText(run.updated_at or "-")
        self._sync_clock_to_run()
        self._refresh_controls()

    def load_config(self, config: WorkflowConfig) -> bool:
        """Compile `config` and swap in the new timeline and clock as a unit.

        Returns False (and shows an error banner) when the graph has a cycle.
        """

        self.teardown()
        try:
            timeline = compile_timeline(config)
        except CyclicDependencyError as e:
            self._config = None
            self._timeline = None
            self._projection = None
            self._timeline_widget.set_timeline(None)
            self._rebuild_task_controls()
            self._error_label.setText(
                f"Cannot build the timeline: task '{e.task_id}' is part of a dependency "
                f"cycle ({' -> '.join(e.cycle)}). Fix the workflow dependencies and reload."
            )
            self._error_label.setVisible(True)
            self._issues_label.setVisible(False)
            self._refresh_controls()
            return False

        self._error_label.setVisible(False)
        self._config = config
        self._timeline = timeline
        self._overrides = {}

        issues = find_configuration_issues(config)
        self._issues_label.setText(
            "Configuration warnings:\n" + "\n".join(f"- {i}" for i in issues)
        )
        self._issues_label.setVisible(bool(issues))

        self._timeline_widget.set_timeline(timeline)
        self._rebuild_task_controls()

        self._start_clock(timeline)
        self._refresh_controls()
        return True

    def teardown(self) -> None:
        if self._clock is not None:
            self._clock.cancel()
            self._clock.deleteLater()
            self._clock = None

    def set_busy(self, busy: bool) -> None:
        self._busy = bool(busy)
        self._refresh_controls()

    def apply_command_result(self, request: CommandRequest) -> None:
        """Reflect a successful task command until the run manager reports otherwise."""

        if request.task_id is None:
            return
        if request.operation == "skip_task":
            self._overrides[request.task_id] = TaskState.SKIPPED
        elif request.operation == "retry_task":
            self._overrides.pop(request.task_id, None)
        else:
            return
        if self._timeline is not None:
            self._refresh_projection(self.current_time())

    # Internals.

    def _start_clock(self, timeline: Timeline) -> None:
        self._clock = RunClock(
            total_duration=timeline.total_duration, interval_ms=self._tick_ms, parent=self
        )
        self._clock.ticked.connect(self._refresh_projection)
        self._refresh_projection(0.0)
        self._sync_clock_to_run()

    def _restart_session(self) -> None:
        # Elapsed time and task overrides belong to one run.
        self._overrides = {}
        self.teardown()
        if self._timeline is not None:
            self._start_clock(self._timeline)

    def _sync_clock_to_run(self) -> None:
        if self._clock is None:
            return
        self._clock.set_running(self._run is not None and self._run.state is RunState.RUNNING)

    def _rebuild_task_controls(self) -> None:
        self._task_select.clear()
        while self._util_form.rowCount():
            self._util_form.removeRow(0)
        self._util_bars = {}
        if self._timeline is None:
            return
        for t in self._timeline.tasks:
            self._task_select.addItem(t.id, t.id)
        for lane in self._timeline.lanes:
            bar = QProgressBar(self)
            # Overlapping tasks can push a lane past 100%.
            bar.setRange(0, 100)
            bar.setFormat("%v%")
            self._util_bars[lane.id] = bar
            self._util_form.addRow(lane.name, bar)

    def _refresh_projection(self, current_time: float) -> None:
        timeline = self._timeline
        if timeline is None:
            return
        projection = project(timeline, current_time, overrides=self._overrides)
        self._projection = projection

        self._progress_bar.setValue(min(100, projection.progress_percent))
        self._progress_label.setText(format_progress(projection, timeline.total_duration))
        self._stats_label.setText(format_task_stats(projection))
        for lane_id, util in projection.instrument_utilization.items():
            bar = self._util_bars.get(lane_id)
            if bar is not None:
                bar.setMaximum(max(100, util))
                bar.setValue(util)
        self._timeline_widget.set_current_time(current_time)

    def _refresh_controls(self) -> None:
        cs = control_state(self._run.state if self._run else None, busy=self._busy)
        self._pause_btn.setVisible(cs.pause_visible)
        self._stop_btn.setVisible(cs.stop_visible)
        self._resume_btn.setVisible(cs.resume_visible)
        for btn in (self._pause_btn, self._stop_btn, self._resume_btn):
            btn.setEnabled(cs.enabled)
        has_tasks = self._task_select.count() > 0
        self._skip_btn.setEnabled(cs.task_actions_enabled and has_tasks)
        self._retry_btn.setEnabled(cs.task_actions_enabled and has_tasks)

    def _request(self, operation: str) -> None:
        if self._run is None or self._busy:
            return
        self.command_requested.emit(CommandRequest(operation=operation, run_id=self._run.id))

    def _request_task(self, operation: str) -> None:
        if self._run is None or self._busy:
            return
        task_id = self._task_select.currentData()
        if not task_id:
            return
        self.command_requested.emit(
            CommandRequest(operation=operation, run_id=self._run.id, task_id=str(task_id))
        )
