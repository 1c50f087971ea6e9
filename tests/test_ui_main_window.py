from __future__ import annotations

import json
from pathlib import Path


def _ensure_qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


def _make_window():
    from PySide6.QtCore import QObject, Signal

    from labrun_ui.main_window import MainWindow

    class _FakeController(QObject):
        started = Signal(int, str)
        succeeded = Signal(int, object)
        failed = Signal(int, str, str)
        finished = Signal(int, float)
        idle = Signal()

        def __init__(self) -> None:
            super().__init__()
            self._active: int | None = None
            self._next = 1
            self.requests: list[object] = []
            self.shutdown_called = False

        def is_running(self) -> bool:
            return self._active is not None

        def active_token(self) -> int | None:
            return self._active

        def start(self, request) -> int:
            self.requests.append(request)
            self._active = self._next
            self._next += 1
            self.started.emit(self._active, request.operation)
            return self._active

        def complete(self) -> None:
            tok = self._active
            self.finished.emit(tok, 0.01)
            self._active = None
            self.idle.emit()

        def shutdown(self) -> None:
            self.shutdown_called = True

    controller = _FakeController()
    w = MainWindow(run_controller=controller, tick_ms=1000)
    w.show()
    return w, controller


def test_load_workflow_paths(monkeypatch, tmp_path: Path, example_workflow_path) -> None:
    _ensure_qapp()
    from PySide6.QtWidgets import QFileDialog, QMessageBox

    w, _c = _make_window()

    # Open dialog cancelled.
    monkeypatch.setattr(QFileDialog, "getOpenFileName", lambda *a, **k: ("", ""))
    w._open_workflow_dialog()
    assert w.run_view().timeline() is None

    # Open dialog selects the example.
    monkeypatch.setattr(
        QFileDialog, "getOpenFileName", lambda *a, **k: (str(example_workflow_path), "")
    )
    w._open_workflow_dialog()
    assert w.run_view().timeline().total_duration == 50.0
    assert w.status_text() == "Loaded workflow: liquid_handling.json"
    assert w._workflow_label.text() == str(example_workflow_path)

    # Broken JSON.
    errors: list[str] = []
    monkeypatch.setattr(QMessageBox, "critical", lambda _p, _t, text: errors.append(text))
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    w.load_workflow(bad)
    assert errors and errors[0].startswith("Error:")
    assert w.status_text() == "Workflow load failed"

    # Cyclic workflow.
    cyc = tmp_path / "cyc.json"
    cyc.write_text(
        json.dumps(
            {
                "tasks": {
                    "a": {"id": "a", "instrument_type": "X", "duration": 1, "dependencies": ["a"]}
                },
                "instruments": {"x": {"id": "x", "type": "X"}},
                "labware": {},
            }
        ),
        encoding="utf-8",
    )
    w.load_workflow(cyc)
    assert w.status_text() == "Workflow has a dependency cycle: cyc.json"
    assert w.run_view().timeline() is None
    w.close()


def test_load_run_and_command_round_trip(
    monkeypatch, example_workflow_path, example_config
) -> None:
    _ensure_qapp()
    from PySide6.QtWidgets import QMessageBox

    from labrun.model import Run, RunState, Workflow
    from labrun_ui.run_controller import LOAD_RUN, REFRESH, CommandOutcome, CommandRequest

    w, c = _make_window()
    w.load_workflow(example_workflow_path)

    w.load_run("   ")
    assert w.status_text() == "Enter a run id"
    assert c.requests == []

    w.load_run(" r1 ")
    assert c.requests[-1] == CommandRequest(operation=LOAD_RUN, run_id="r1")
    assert w.status_text() == "Load run…"
    assert not w._load_run_btn.isEnabled()

    # A second load while busy is refused.
    w.load_run("r2")
    assert len(c.requests) == 1
    assert w.status_text() == "A command is still in progress"

    run = Run(id="r1", workflow_id="w1", workcell_id="wc1", state=RunState.RUNNING)
    workflow = Workflow(id="w1", name="Liquid handling", config=example_config)
    c.succeeded.emit(
        c.active_token(), CommandOutcome(request=c.requests[-1], run=run, workflow=workflow)
    )
    c.complete()
    assert w.run_view().run() == run
    assert w.run_view().timeline().total_duration == 50.0
    assert w._workflow_label.text() == "Liquid handling (run manager)"
    assert w.status_text() == "Run r1: RUNNING"
    assert w._load_run_btn.isEnabled()
    assert w.run_view().clock().is_active()

    # Pause: success is followed by an automatic refresh once the controller is idle.
    w.run_view()._request("pause")
    pause_req = c.requests[-1]
    assert pause_req == CommandRequest(operation="pause", run_id="r1")
    c.succeeded.emit(c.active_token(), CommandOutcome(request=pause_req))
    assert w.status_text() == "Pause run requested"
    c.complete()
    assert c.requests[-1] == CommandRequest(operation=REFRESH, run_id="r1")

    paused = Run(id="r1", workflow_id="w1", workcell_id="wc1", state=RunState.PAUSED)
    c.succeeded.emit(c.active_token(), CommandOutcome(request=c.requests[-1], run=paused))
    c.complete()
    assert not w.run_view().clock().is_active()

    # Failure: warning names the operation, no refresh follows.
    warnings: list[tuple[str, str]] = []
    monkeypatch.setattr(
        QMessageBox, "warning", lambda _p, title, text: warnings.append((title, text))
    )
    w.run_view()._request("resume")
    n = len(c.requests)
    c.failed.emit(c.active_token(), "resume", "resume run 'r1' failed: HTTP 409: nope")
    c.complete()
    assert warnings == [("Resume run failed", "resume run 'r1' failed: HTTP 409: nope")]
    assert w.status_text() == "Resume run failed"
    assert len(c.requests) == n

    # Signals for a stale token are ignored.
    c.succeeded.emit(999, CommandOutcome(request=pause_req, run=run))
    assert w.run_view().run() == paused

    w.close()
    assert c.shutdown_called
    assert w.run_view().clock() is None


def test_skip_task_marks_task_and_refreshes(example_workflow_path) -> None:
    _ensure_qapp()
    from labrun.model import Run, RunState
    from labrun.types import TaskState
    from labrun_ui.run_controller import REFRESH, CommandOutcome, CommandRequest

    w, c = _make_window()
    w.load_workflow(example_workflow_path)
    w.run_view().set_run(Run(id="r1", workflow_id="w", workcell_id="c", state=RunState.PAUSED))

    req = CommandRequest(operation="skip_task", run_id="r1", task_id="do_stacking")
    w._on_command_requested(req)
    assert c.requests[-1] == req
    c.succeeded.emit(c.active_token(), CommandOutcome(request=req))
    c.complete()

    assert w.run_view().timeline().task("do_stacking").state is TaskState.SKIPPED
    assert c.requests[-1].operation == REFRESH
    w.close()


def test_preview_run_is_local_only(monkeypatch, example_workflow_path) -> None:
    _ensure_qapp()
    from PySide6.QtWidgets import QMessageBox

    from labrun.model import RunState
    from labrun_ui.main_window import PREVIEW_RUN_ID

    w, c = _make_window()

    infos: list[str] = []
    monkeypatch.setattr(QMessageBox, "information", lambda _p, _t, text: infos.append(text))
    w.preview_run()
    assert infos == ["Load a workflow first."]

    w.load_workflow(example_workflow_path)
    w.preview_run()
    run = w.run_view().run()
    assert run.id == PREVIEW_RUN_ID
    assert run.state is RunState.RUNNING
    assert run.workflow_id == "liquid_handling"
    assert w.run_view().clock().is_active()

    w.run_view()._request("pause")
    assert c.requests == []
    assert w.status_text() == "Preview runs are not connected to a run manager"
    w.close()


def test_export_timeline(monkeypatch, tmp_path: Path, example_workflow_path) -> None:
    _ensure_qapp()
    from PySide6.QtWidgets import QFileDialog, QMessageBox

    w, _c = _make_window()

    infos: list[str] = []
    monkeypatch.setattr(QMessageBox, "information", lambda _p, _t, text: infos.append(text))
    w._export_timeline_dialog()
    assert infos == ["Open a workflow first."]

    w.load_workflow(example_workflow_path)
    target = tmp_path / "summary"
    monkeypatch.setattr(QFileDialog, "getSaveFileName", lambda *a, **k: (str(target), ""))
    w._export_timeline_dialog()

    summary = json.loads((tmp_path / "summary.json").read_text(encoding="utf-8"))
    assert summary["total_duration"] == 50.0
    assert summary["lanes"][0]["utilization_percent"] == 100
    w.close()


def test_menus_and_about(monkeypatch) -> None:
    _ensure_qapp()
    from labrun_ui import main_window_menus

    w, _c = _make_window()
    titles = [a.text() for a in w.menuBar().actions()]
    assert titles == ["File", "Run", "Help"]

    main_window_menus.show_about_dialog(w)
    assert "labrun" in w._about_dialog.text()
    w._about_dialog.close()
    w.close()


def test_loaded_run_is_drawn_against_its_own_workflow(example_workflow_path) -> None:
    _ensure_qapp()
    from labrun.model import Run, RunState, Workflow, WorkflowConfig
    from labrun_ui.run_controller import LOAD_RUN, CommandOutcome, CommandRequest

    w, c = _make_window()
    # A local file is open; the run executes a different workflow.
    w.load_workflow(example_workflow_path)
    assert w.run_view().timeline().total_duration == 50.0

    w.load_run("r9")
    req = c.requests[-1]
    assert req == CommandRequest(operation=LOAD_RUN, run_id="r9")

    config = WorkflowConfig.from_json(
        {
            "tasks": {
                "scan": {"id": "scan", "instrument_type": "R", "duration": 4, "dependencies": []},
                "read": {
                    "id": "read",
                    "instrument_type": "R",
                    "duration": 6,
                    "dependencies": ["scan"],
                },
            },
            "instruments": {"reader": {"id": "reader", "type": "R"}},
            "labware": {},
        }
    )
    run = Run(id="r9", workflow_id="w9", workcell_id="wc1", state=RunState.RUNNING)
    c.succeeded.emit(
        c.active_token(),
        CommandOutcome(request=req, run=run, workflow=Workflow(id="w9", name="", config=config)),
    )
    c.complete()

    view = w.run_view()
    assert view.run() == run
    assert view.timeline().total_duration == 10.0
    assert [t.id for t in view.timeline().tasks] == ["scan", "read"]
    assert view.current_time() == 0.0
    assert view.clock().is_active()
    assert w._workflow_label.text() == "w9 (run manager)"
    assert w.status_text() == "Run r9: RUNNING"

    # A cyclic workflow from the run manager is reported, not drawn.
    w.load_run("r10")
    cyclic = WorkflowConfig.from_json(
        {
            "tasks": {
                "a": {"id": "a", "instrument_type": "R", "duration": 1, "dependencies": ["a"]}
            },
            "instruments": {"reader": {"id": "reader", "type": "R"}},
            "labware": {},
        }
    )
    c.succeeded.emit(
        c.active_token(),
        CommandOutcome(
            request=c.requests[-1],
            run=Run(id="r10", workflow_id="w10", workcell_id="wc1", state=RunState.RUNNING),
            workflow=Workflow(id="w10", name="Loop", config=cyclic),
        ),
    )
    c.complete()
    assert view.timeline() is None
    assert w.status_text() == "Workflow has a dependency cycle: w10"
    w.close()
