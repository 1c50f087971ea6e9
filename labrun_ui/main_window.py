from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from labrun.log import get_logger
from labrun.model import Run, RunState, Workflow, WorkflowConfig
from labrun_ui.main_window_file_io import (
    export_timeline_dialog as _export_timeline_dialog,
    load_workflow as _load_workflow,
    open_workflow_dialog as _open_workflow_dialog,
)
from labrun_ui.main_window_menus import build_menus
from labrun_ui.run_controller import (
    LOAD_RUN,
    REFRESH,
    CommandOutcome,
    CommandRequest,
    RunController,
)
from labrun_ui.run_view import RunDetailView
from labrun_ui.run_view_model import operation_label

log = get_logger(__name__)

PREVIEW_RUN_ID = "local-preview"


@dataclass
class _LoadedWorkflow:
    path: Path
    config: WorkflowConfig


class MainWindow(QMainWindow):
    def __init__(self, *, run_controller: RunController, tick_ms: int | None = None) -> None:
        super().__init__()
        self._controller = run_controller
        self._loaded: _LoadedWorkflow | None = None

        # Commands only report success; the run is re-read once the worker
        # thread has stopped.
        self._pending_refresh: str | None = None

        build_menus(
            self,
            on_open_workflow=self._open_workflow_dialog,
            on_export_timeline=self._export_timeline_dialog,
            on_preview_run=self.preview_run,
            on_exit=self.close,
        )
        self._build_ui(tick_ms)
        self._wire_controller()

        self.setWindowTitle("Lab Run Dashboard")
        self._set_busy(False)

    def _build_ui(self, tick_ms: int | None) -> None:
        root = QWidget()
        root_layout = QVBoxLayout(root)
        root_layout.setContentsMargins(0, 0, 0, 0)
        root_layout.setSpacing(0)
        self.setCentralWidget(root)

        top = QWidget(root)
        top.setObjectName("top_bar")
        tl = QHBoxLayout(top)
        tl.setContentsMargins(12, 8, 12, 8)
        tl.addWidget(QLabel("Workflow:", top))
        self._workflow_label = QLabel("(none)", top)
        self._workflow_label.setObjectName("workflow_path")
        tl.addWidget(self._workflow_label, 1)
        tl.addWidget(QLabel("Run ID:", top))
        self._run_id_edit = QLineEdit(top)
        self._run_id_edit.setPlaceholderText("run id")
        self._run_id_edit.returnPressed.connect(self._on_load_run_clicked)
        tl.addWidget(self._run_id_edit)
        self._load_run_btn = QPushButton("Load run", top)
        self._load_run_btn.clicked.connect(self._on_load_run_clicked)
        tl.addWidget(self._load_run_btn)
        root_layout.addWidget(top)

        self._view = RunDetailView(root, tick_ms=tick_ms)
        self._view.command_requested.connect(self._on_command_requested)
        root_layout.addWidget(self._view, 1)

        status = QStatusBar()
        self.setStatusBar(status)
        self._busy_bar = QProgressBar()
        self._busy_bar.setFixedWidth(160)
        self._busy_bar.setTextVisible(False)
        self._busy_bar.setRange(0, 0)
        status.addPermanentWidget(self._busy_bar)

        self._status_label = QLabel("Ready")
        status.addWidget(self._status_label, 1)

    def _wire_controller(self) -> None:
        self._controller.started.connect(self._on_command_started)
        self._controller.succeeded.connect(self._on_command_succeeded)
        self._controller.failed.connect(self._on_command_failed)
        self._controller.finished.connect(self._on_command_finished)
        self._controller.idle.connect(self._on_controller_idle)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        # Stop the clock and wait for an in-flight request to avoid:
        #   QThread: Destroyed while thread '' is still running
        self._view.teardown()
        self._controller.shutdown()
        super().closeEvent(event)

    def run_view(self) -> RunDetailView:
        return self._view

    def status_text(self) -> str:
        return self._status_label.text()

    # Workflow.

    def _open_workflow_dialog(self) -> None:
        _open_workflow_dialog(self)

    def _export_timeline_dialog(self) -> None:
        _export_timeline_dialog(self)

    def load_workflow(self, path: Path) -> None:
        _load_workflow(self, Path(path))

    def _set_workflow_load_ok(self, path: Path, config: WorkflowConfig) -> None:
        self._loaded = _LoadedWorkflow(path=path, config=config)
        self._workflow_label.setText(str(path))
        if self._view.load_config(config):
            self._status_label.setText(f"Loaded workflow: {path.name}")
        else:
            self._status_label.setText(f"Workflow has a dependency cycle: {path.name}")

    def _set_run_workflow(self, workflow: Workflow) -> None:
        """Draw the run against the workflow the run manager says it executes."""

        self._loaded = None
        self._workflow_label.setText(f"{workflow.name or workflow.id} (run manager)")
        if not self._view.load_config(workflow.config):
            self._status_label.setText(f"Workflow has a dependency cycle: {workflow.id}")

    def _set_workflow_load_failed(self, path: Path, text: str) -> None:
        self._loaded = None
        self._workflow_label.setText(f"{path} (failed to load)")
        self._status_label.setText("Workflow load failed")
        QMessageBox.critical(self, "Failed to load workflow", text)

    # Runs.

    def _on_load_run_clicked(self) -> None:
        self.load_run(self._run_id_edit.text())

    def load_run(self, run_id: str) -> None:
        run_id = (run_id or "").strip()
        if not run_id:
            self._status_label.setText("Enter a run id")
            return
        self._run_id_edit.setText(run_id)
        if self._controller.is_running():
            self._status_label.setText("A command is still in progress")
            return
        self._controller.start(CommandRequest(operation=LOAD_RUN, run_id=run_id))

    def preview_run(self) -> None:
        """Show the loaded workflow as a local RUNNING run without a run manager."""

        if self._view.timeline() is None:
            QMessageBox.information(self, "Preview", "Load a workflow first.")
            return
        workflow_id = self._loaded.path.stem if self._loaded is not None else "local"
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self._view.set_run(
            Run(
                id=PREVIEW_RUN_ID,
                workflow_id=workflow_id,
                workcell_id="local",
                state=RunState.RUNNING,
                created_at=now,
                updated_at=now,
            )
        )
        self._status_label.setText("Previewing workflow locally")

    def _on_command_requested(self, request: CommandRequest) -> None:
        if request.run_id == PREVIEW_RUN_ID:
            self._status_label.setText("Preview runs are not connected to a run manager")
            return
        if self._controller.is_running():
            return
        self._controller.start(request)

    def _set_busy(self, busy: bool) -> None:
        self._busy_bar.setVisible(busy)
        self._load_run_btn.setEnabled(not busy)
        self._view.set_busy(busy)

    def _on_command_started(self, token: int, operation: str) -> None:
        self._set_busy(True)
        self._status_label.setText(f"{operation_label(operation)}…")

    def _on_command_succeeded(self, token: int, outcome: object) -> None:
        if token != self._controller.active_token() or not isinstance(outcome, CommandOutcome):
            return
        req = outcome.request
        if outcome.run is not None:
            self._view.set_run(outcome.run)
            self._status_label.setText(f"Run {outcome.run.id}: {outcome.run.state.value}")
            if outcome.workflow is not None:
                self._set_run_workflow(outcome.workflow)
            return
        self._view.apply_command_result(req)
        self._status_label.setText(f"{operation_label(req.operation)} requested")
        self._pending_refresh = req.run_id

    def _on_command_failed(self, token: int, operation: str, error_text: str) -> None:
        if token != self._controller.active_token():
            return
        label = operation_label(operation)
        log.warning("run_command_failed", operation=operation, error=error_text)
        self._pending_refresh = None
        self._status_label.setText(f"{label} failed")
        QMessageBox.warning(self, f"{label} failed", error_text)

    def _on_command_finished(self, token: int, elapsed_s: float) -> None:
        self._set_busy(False)

    def _on_controller_idle(self) -> None:
        run_id, self._pending_refresh = self._pending_refresh, None
        if run_id is not None:
            self._controller.start(CommandRequest(operation=REFRESH, run_id=run_id))
