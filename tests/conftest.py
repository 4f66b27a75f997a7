from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from jobdag.ui.console import Console  # noqa: E402


class RecordingUI(Console):
    """Console that keeps every event instead of printing it."""

    def __init__(self):
        super().__init__(color=False)
        self.events = []

    def print_job_started(self, name, slot_index, command):
        self.events.append(("start", name, slot_index))

    def print_job_result(self, name, slot_index, exit_code, passed):
        self.events.append(("finish", name, slot_index, exit_code, passed))

    def print_job_skipped(self, name, reason):
        self.events.append(("skip", name))

    def index(self, kind, name):
        for i, event in enumerate(self.events):
            if event[0] == kind and event[1] == name:
                return i
        raise AssertionError(f"no {kind} event for {name!r}: {self.events}")


@pytest.fixture
def ui():
    return RecordingUI()


@pytest.fixture
def write_script(tmp_path):
    """Write a workflow script and return its path."""

    def _write(source: str, name: str = "workflow.py") -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source)
        return path

    return _write
