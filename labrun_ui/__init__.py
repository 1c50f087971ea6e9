"""PySide6 desktop client for labrun run monitoring.

This package is a *client* of the headless core:

- Core stays UI-agnostic (no Qt imports under `labrun/`).
- Run commands go to the run manager on a background thread.

Run from source:

    python -m labrun_ui --workflow examples/liquid_handling.json --run-id <id>
"""

from __future__ import annotations

from labrun.version import __version__

__all__ = ["__version__"]
