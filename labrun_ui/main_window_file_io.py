from __future__ import annotations

import json
from pathlib import Path

from PySide6.QtWidgets import QFileDialog, QMessageBox

from labrun.io import load_workflow_config, write_summary_json
from labrun.metrics import summarize_timeline


def open_workflow_dialog(window) -> None:
    path_str, _ = QFileDialog.getOpenFileName(
        window,
        "Open workflow",
        "",
        "JSON files (*.json);;All files (*)",
    )
    if not path_str:
        return
    # Call the window method so tests can monkeypatch `MainWindow.load_workflow`.
    window.load_workflow(Path(path_str))


def load_workflow(window, path: Path) -> None:
    try:
        config = load_workflow_config(path)
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        window._set_workflow_load_failed(path, f"Error: {e}")  # noqa: SLF001
        return

    window._set_workflow_load_ok(path, config)  # noqa: SLF001


def export_timeline_dialog(window) -> None:
    timeline = window.run_view().timeline()
    if timeline is None:
        QMessageBox.information(window, "Nothing to export", "Open a workflow first.")
        return

    path_str, _ = QFileDialog.getSaveFileName(
        window,
        "Export timeline summary",
        "",
        "JSON files (*.json);;All files (*)",
    )
    if not path_str:
        return
    out_path = Path(path_str)
    if out_path.suffix.lower() != ".json":
        out_path = out_path.with_suffix(".json")

    try:
        write_summary_json(out_path, summarize_timeline(timeline))
    except OSError as e:
        QMessageBox.critical(window, "Export failed", f"Could not export timeline: {e}")
