# stats.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import InvariantError
from .model import Outcome


@dataclass(frozen=True)
class JobStat:
    name: str
    exit_code: Optional[int]
    slot_index: Optional[int]
    outcome: Outcome
    duration: float


@dataclass(frozen=True)
class Summary:
    passed: int
    failed: int
    skipped: int
    elapsed: float
    slowest: Optional[JobStat]

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped


class Stats:
    """Collects one entry per terminal job and totals them."""

    def __init__(self) -> None:
        self.records: Dict[str, JobStat] = {}
        self._started = time.monotonic()
        self._finished: Optional[float] = None

    def record(
        self,
        name: str,
        exit_code: Optional[int],
        slot_index: Optional[int],
        outcome: Outcome,
        duration: float = 0.0,
    ) -> JobStat:
        if name in self.records:
            raise InvariantError("duplicate_report", job=name)
        stat = JobStat(name, exit_code, slot_index, outcome, duration)
        self.records[name] = stat
        return stat

    def stop(self) -> None:
        self._finished = time.monotonic()

    def _with(self, outcome: Outcome) -> List[JobStat]:
        return [s for s in self.records.values() if s.outcome is outcome]

    @property
    def passed(self) -> List[JobStat]:
        return self._with(Outcome.PASSED)

    @property
    def failed(self) -> List[JobStat]:
        return self._with(Outcome.FAILED)

    @property
    def skipped(self) -> List[JobStat]:
        return self._with(Outcome.SKIPPED)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> Summary:
        ran = [s for s in self.records.values() if s.outcome is not Outcome.SKIPPED]
        end = self._finished if self._finished is not None else time.monotonic()
        return Summary(
            passed=len(self.passed),
            failed=len(self.failed),
            skipped=len(self.skipped),
            elapsed=end - self._started,
            slowest=max(ran, key=lambda s: s.duration) if ran else None,
        )
