# dag.py
from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set

from .errors import ArgumentError, ConfigurationError, DefinitionError, InvariantError
from .model import Action, Job, JobState

logger = logging.getLogger(__name__)

# Joins an import prefix to the imported job names.
SEPARATOR = "_"


class Graph:
    """
    Jobs keyed by name, in definition order, plus their predecessor edges.

    The graph is the only place job state changes. Dispatch drives it through
    mark_started() / mark_finished() and reads it through ready_jobs().
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_job(
        self,
        name: str,
        predecessors: Iterable[str] = (),
        action: Optional[Action] = None,
        *,
        location: Optional[str] = None,
    ) -> Job:
        predecessors = list(predecessors)

        if not isinstance(name, str) or not name.strip():
            raise ArgumentError("invalid_job_name", name=name, location=location)
        if action is None:
            raise DefinitionError("incomplete_job", job=name, ident=_ident(name), location=location)
        if name in self._jobs:
            raise DefinitionError("duplicate_job", job=name, location=location)

        missing = [p for p in predecessors if p not in self._jobs]
        if missing:
            raise DefinitionError(
                "undefined_predecessor", job=name, predecessors=missing, location=location
            )

        job = Job(name=name, action=action, predecessors=_dedupe(predecessors), location=location)
        self._jobs[name] = job
        logger.debug("defined job %r after %s", name, job.predecessors)
        return job

    def import_file(
        self,
        prefix: object,
        path: str | Path,
        *,
        base: Optional[Path] = None,
        location: Optional[str] = None,
        plusargs: Optional[Dict[str, object]] = None,
    ) -> List[Job]:
        """
        Evaluate another workflow script and merge its jobs under `prefix`.

        Args:
            prefix: Non-blank string prepended (with SEPARATOR) to every imported name
            path: Workflow script to evaluate
            base: Directory a relative `path` is resolved against (default: cwd)
            location: Source location of the import, used in error messages
            plusargs: Passed through to the imported script

        Returns:
            The merged jobs, in the imported script's definition order.
        """
        if not isinstance(prefix, str) or not prefix.strip():
            raise ArgumentError("import_prefix", location=location)

        target = Path(path).expanduser()
        if base is not None and not target.is_absolute():
            target = base / target
        if not target.is_file():
            raise ArgumentError("import_missing", path=str(path), location=location)

        from .dsl import load_graph  # dsl builds on Graph

        imported, _script = load_graph(target, plusargs)
        return self.merge(imported, prefix, location=location)

    def merge(self, other: Graph, prefix: str, *, location: Optional[str] = None) -> List[Job]:
        def rename(n: str) -> str:
            return f"{prefix}{SEPARATOR}{n}"

        collisions = [rename(n) for n in other._jobs if rename(n) in self._jobs]
        if collisions:
            raise DefinitionError("import_collision", prefix=prefix, jobs=collisions, location=location)

        merged: List[Job] = []
        for job in other:
            new = Job(
                name=rename(job.name),
                action=job.action,
                predecessors=[rename(p) for p in job.predecessors],
                location=job.location,
            )
            self._jobs[new.name] = new
            merged.append(new)

        logger.debug("imported %d job(s) under prefix %r", len(merged), prefix)
        return merged

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    def __iter__(self) -> Iterator[Job]:
        return iter(list(self._jobs.values()))

    def __len__(self) -> int:
        return len(self._jobs)

    def job(self, name: str) -> Job:
        try:
            return self._jobs[name]
        except KeyError:
            raise InvariantError("unknown_job", job=name) from None

    @property
    def names(self) -> List[str]:
        return list(self._jobs)

    def dependents(self) -> Dict[str, List[str]]:
        """Map each job to the jobs that list it as a predecessor."""
        adj: Dict[str, List[str]] = {n: [] for n in self._jobs}
        for job in self._jobs.values():
            for p in job.predecessors:
                if p in adj:
                    adj[p].append(job.name)
        return adj

    def descendants(self, name: str) -> List[str]:
        """Every job reachable from `name` through dependents, in definition order."""
        self.job(name)
        adj = self.dependents()
        seen: Set[str] = set()
        q = deque(adj[name])
        while q:
            n = q.popleft()
            if n in seen:
                continue
            seen.add(n)
            q.extend(adj[n])
        return [n for n in self._jobs if n in seen]

    def validate(self) -> List[List[str]]:
        """
        Topologically order the graph into levels of mutually independent jobs.

        Raises ConfigurationError when some jobs can never become ready,
        i.e. the predecessor relation has a cycle. Safe to call repeatedly.
        """
        indeg: Dict[str, int] = {}
        for job in self._jobs.values():
            missing = [p for p in job.predecessors if p not in self._jobs]
            if missing:
                raise DefinitionError(
                    "undefined_predecessor", job=job.name, predecessors=missing, location=job.location
                )
            indeg[job.name] = len(job.predecessors)

        adj = self.dependents()
        q = deque(n for n, d in indeg.items() if d == 0)
        levels: List[List[str]] = []
        processed = 0

        while q:
            level: List[str] = []
            for _ in range(len(q)):
                node = q.popleft()
                level.append(node)
                processed += 1
                for child in adj[node]:
                    indeg[child] -= 1
                    if indeg[child] == 0:
                        q.append(child)
            levels.append(level)

        if processed != len(indeg):
            stuck = [n for n, d in indeg.items() if d > 0]
            raise ConfigurationError("cycle", jobs=stuck)

        return levels

    def ready_jobs(self) -> List[Job]:
        """Jobs that may start now. Pending jobs are promoted on the way."""
        ready: List[Job] = []
        for job in self._jobs.values():
            if job.state is JobState.PENDING and all(
                self._jobs[p].state is JobState.SUCCEEDED for p in job.predecessors
            ):
                job.state = JobState.READY
            if job.state is JobState.READY:
                ready.append(job)
        return ready

    def is_finished(self) -> bool:
        return all(job.state.terminal for job in self._jobs.values())

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def mark_started(self, name: str, slot_index: int) -> Job:
        job = self.job(name)
        if job.state is not JobState.READY:
            raise InvariantError("bad_transition", job=name, current=job.state.value, target="running")
        job.state = JobState.RUNNING
        job.slot_index = slot_index
        return job

    def mark_finished(self, name: str, exit_code: Optional[int]) -> List[Job]:
        """
        Record the exit of a running job.

        Returns the jobs newly skipped because of it (empty unless it failed).
        """
        job = self.job(name)
        if job.state is not JobState.RUNNING:
            raise InvariantError("bad_transition", job=name, current=job.state.value, target="finished")

        job.exit_code = exit_code
        if exit_code == 0:
            job.state = JobState.SUCCEEDED
            return []

        job.state = JobState.FAILED
        skipped: List[Job] = []
        for n in self.descendants(name):
            dep = self._jobs[n]
            if dep.state.terminal:
                continue
            if dep.state is JobState.RUNNING:
                raise InvariantError("bad_transition", job=n, current="running", target="skipped")
            dep.state = JobState.SKIPPED
            skipped.append(dep)

        if skipped:
            logger.debug("%r failed, skipping %s", name, [j.name for j in skipped])
        return skipped

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def to_dot(self) -> str:
        lines = ["digraph jobs {"]
        for job in self._jobs.values():
            lines.append(f"  {_quote(job.name)};")
        for job in self._jobs.values():
            for p in job.predecessors:
                lines.append(f"  {_quote(p)} -> {_quote(job.name)};")
        lines.append("}")
        return "\n".join(lines)


def _dedupe(names: List[str]) -> List[str]:
    return list(dict.fromkeys(names))


def _quote(name: str) -> str:
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _ident(name: object) -> str:
    text = "".join(c if c.isalnum() else "_" for c in str(name))
    return text if text and not text[0].isdigit() else f"_{text}"
