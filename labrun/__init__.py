"""Headless core for the labrun run dashboard.

Qt-free: timeline compilation, live state projection and the HTTP run-control
client live here. The desktop client consumes this package; nothing here
imports it back.
"""

from __future__ import annotations

from labrun.version import __version__

__all__ = ["__version__"]
