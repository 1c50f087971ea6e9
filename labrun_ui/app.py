from __future__ import annotations

import argparse
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from labrun.log import configure_logging
from labrun.settings import get_settings
from labrun_ui.main_window import MainWindow
from labrun_ui.run_controller import RunController
from labrun_ui.theme import apply_theme, theme_from_name


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="labrun_ui", add_help=False)
    p.add_argument("--workflow", type=Path, required=False)
    p.add_argument("--run-id", required=False)
    args, _qt_args = p.parse_known_args(argv[1:])
    return args


def run_app(argv: list[str] | None = None) -> int:
    argv = list(argv if argv is not None else sys.argv)
    args = _parse_args(argv)
    configure_logging()

    app = QApplication(argv)
    app.setApplicationName("labrun")
    app.setOrganizationName("labrun")
    apply_theme(app, theme_from_name(get_settings().ui_theme))

    controller = RunController()
    # Don't tear down while a command worker thread is still running.
    app.aboutToQuit.connect(controller.shutdown)
    window = MainWindow(run_controller=controller)
    window.resize(1200, 780)
    window.show()

    if args.workflow is not None:
        window.load_workflow(args.workflow)
    if args.run_id:
        window.load_run(args.run_id)

    return app.exec()
