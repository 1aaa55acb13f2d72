"""Repository-wide pytest configuration.

Pins the repository root on ``sys.path`` so ``automation_cli`` imports without
an editable install, and keeps tool settings from the caller's shell out of
the tests.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("PYTHONPATH", str(ROOT))


@pytest.fixture(autouse=True)
def _clear_tool_settings(monkeypatch):
    for key in list(os.environ):
        if key.startswith("AUTOMATION_CLI_"):
            monkeypatch.delenv(key, raising=False)
    yield
