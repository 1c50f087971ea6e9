from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
EXAMPLE_WORKFLOW = REPO_ROOT / "examples" / "liquid_handling.json"


@pytest.fixture(scope="session", autouse=True)
def _qt_offscreen() -> None:
    """Ensure Qt can initialize in CI/headless environments."""

    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session", autouse=True)
def _add_repo_root_to_syspath() -> None:
    """Make local packages importable when running tests from `tests/`.

    Ensure the repo root is on `sys.path` so `import labrun_ui` works.
    """

    root_str = str(REPO_ROOT)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; tests that patch the env need a reload."""

    from labrun.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def example_workflow_path() -> Path:
    return EXAMPLE_WORKFLOW


@pytest.fixture
def example_config():
    from labrun.io import load_workflow_config

    return load_workflow_config(EXAMPLE_WORKFLOW)
