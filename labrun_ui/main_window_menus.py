from __future__ import annotations

import platform
from collections.abc import Callable

import PySide6
from PySide6.QtWidgets import QMainWindow, QMessageBox, QWidget

from labrun.version import __version__


def build_menus(
    window: QMainWindow,
    *,
    on_open_workflow: Callable[[], None],
    on_export_timeline: Callable[[], None],
    on_preview_run: Callable[[], None],
    on_exit: Callable[[], None],
) -> None:
    file_menu = window.menuBar().addMenu("File")
    open_action = file_menu.addAction("Open workflow…")
    open_action.triggered.connect(on_open_workflow)
    export_action = file_menu.addAction("Export timeline summary…")
    export_action.triggered.connect(on_export_timeline)
    file_menu.addSeparator()
    exit_action = file_menu.addAction("Exit")
    exit_action.triggered.connect(on_exit)

    run_menu = window.menuBar().addMenu("Run")
    preview_action = run_menu.addAction("Preview locally")
    preview_action.triggered.connect(on_preview_run)

    help_menu = window.menuBar().addMenu("Help")
    about_action = help_menu.addAction("About…")
    about_action.triggered.connect(lambda: show_about_dialog(window))


def show_about_dialog(parent: QWidget) -> None:
    # Non-modal `open()` rather than `exec()`; keep a reference so it isn't collected.
    dlg = QMessageBox(parent)
    dlg.setWindowTitle("About labrun")
    dlg.setText(_about_text())
    setattr(parent, "_about_dialog", dlg)
    dlg.open()


def _about_text() -> str:
    py_ver = platform.python_version()
    pyside_ver = getattr(PySide6, "__version__", "(unknown)")
    return "\n".join(
        [
            f"labrun {__version__}",
            "Run timeline and control dashboard",
            "",
            f"Python: {py_ver}",
            f"PySide6 (Qt for Python): {pyside_ver}",
        ]
    )
