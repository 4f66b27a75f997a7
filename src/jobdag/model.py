# model.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable as _Callable, List, Optional, TextIO, Union


class JobState(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.SKIPPED)


class Outcome(str, enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Command:
    """An external command line."""
    line: str

    def __str__(self) -> str:
        return self.line


@dataclass(frozen=True)
class Callable:
    """
    An in-process callable.

    The function is called with the open capture sink of its slot and returns
    None/True/0 for success, False for exit code 1, or an int exit code.
    sys.exit(code) maps like the interpreter does; any other return value
    or exception is exit code 1.
    """
    func: _Callable[[TextIO], Any]

    def __str__(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


Action = Union[Command, Callable]


@dataclass
class Job:
    """
    A named unit of work: an action plus the jobs that must succeed first.

    State fields are owned by the Graph; nothing else should assign them.
    """
    name: str
    action: Action
    predecessors: List[str] = field(default_factory=list)
    location: Optional[str] = None

    state: JobState = JobState.PENDING
    exit_code: Optional[int] = None
    slot_index: Optional[int] = None

    @property
    def command(self) -> str:
        return str(self.action)


@dataclass(frozen=True)
class ExecutionRecord:
    """Result of one harvested execution."""
    job: str
    slot_index: int
    exit_code: Optional[int]
    started_at: float
    finished_at: float
    output: str  # path of the capture sink

    @property
    def duration(self) -> float:
        return self.finished_at - self.started_at

    @property
    def passed(self) -> bool:
        return self.exit_code == 0
