# dsl.py
from __future__ import annotations

import logging
import runpy
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable as _Callable, Dict, Iterable, List, Optional, Tuple, Union

from .dag import Graph
from .errors import ArgumentError, ConfigurationError
from .model import Callable, Command, Job

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def caller_source(depth: int = 1) -> str:
    """file:line of the frame `depth` levels above the caller."""
    frame = sys._getframe(depth + 1)
    return f"{frame.f_code.co_filename}:{frame.f_lineno}"


def parse_plusargs(args: Iterable[str]) -> Dict[str, Union[str, bool]]:
    """
    Turn "+name=value" / "+flag" arguments into a dict.

    Example:
        parse_plusargs(["+mode=fast", "+verbose"]) == {"mode": "fast", "verbose": True}
    """
    parsed: Dict[str, Union[str, bool]] = {}
    for arg in args:
        body = arg[1:] if arg.startswith("+") else arg
        if not body:
            continue
        name, sep, value = body.partition("=")
        parsed[name] = value if sep else True
    return parsed


def _to_action(name: str, action: Any, location: str) -> Optional[Union[Command, Callable]]:
    if action is None:
        return None
    if isinstance(action, (Command, Callable)):
        return action
    if isinstance(action, str):
        return Command(action) if action.strip() else None
    if callable(action):
        return Callable(action)
    raise ArgumentError("invalid_action", job=name, kind=type(action).__name__, location=location)


# ---------------------------------------------------------------------
# Script commands
# ---------------------------------------------------------------------

@dataclass
class ScriptOptions:
    """Defaults a workflow script may set with options(...)."""
    max_jobs: Optional[int] = None
    output_directory: Optional[str] = None


class Script:
    """
    The commands a workflow script sees, bound to one Graph.

    A workflow is a Python file evaluated with these names pre-defined:

        job("build", "make all")
        job("test", "make test", needs=["build"])

        @task(needs=["build"])
        def smoke(out):
            out.write("ok\\n")

        import_jobs("lib", "lib/jobs.py")
        options(max_jobs=4, output_directory="out")

        if plusargs.get("mode") == "full":
            ...
    """

    def __init__(self, graph: Graph, path: Path, plusargs: Optional[Dict[str, Any]] = None):
        self.graph = graph
        self.path = path
        self.plusargs: Dict[str, Any] = dict(plusargs or {})
        self.options = ScriptOptions()

    def namespace(self) -> Dict[str, Any]:
        return {
            "job": self.job,
            "task": self.task,
            "import_jobs": self.import_jobs,
            "options": self.set_options,
            "plusargs": self.plusargs,
        }

    def job(self, name: str, action: Any = None, *, needs: Iterable[str] = ()) -> Job:
        """Define a job running a command line (str) or a callable."""
        location = caller_source()
        return self._define(name, action, needs, location)

    def task(self, name: Optional[str] = None, *, needs: Iterable[str] = ()) -> _Callable[[_Callable], _Callable]:
        """Decorator form of job() for callables. The name defaults to the function name."""
        location = caller_source()

        def decorate(func: _Callable) -> _Callable:
            self._define(name or func.__name__, Callable(func), needs, location)
            return func

        # bare @task
        if callable(name):
            func, name = name, None
            return decorate(func)
        return decorate

    def import_jobs(self, prefix: Any, path: Union[str, Path]) -> List[Job]:
        """Merge another workflow's jobs, each renamed to <prefix>_<name>."""
        location = caller_source()
        return self.graph.import_file(
            prefix, path, base=self.path.parent, location=location, plusargs=self.plusargs
        )

    def set_options(self, *, max_jobs: Optional[int] = None, output_directory: Optional[str] = None) -> None:
        if max_jobs is not None:
            self.options.max_jobs = max_jobs
        if output_directory is not None:
            self.options.output_directory = output_directory

    def _define(self, name: str, action: Any, needs: Iterable[str], location: str) -> Job:
        if isinstance(needs, str):
            needs = [needs]
        return self.graph.add_job(
            name, list(needs), _to_action(name, action, location), location=location
        )


# ---------------------------------------------------------------------
# Workflow loading
# ---------------------------------------------------------------------

def load_graph(
    path: Union[str, Path],
    plusargs: Optional[Dict[str, Any]] = None,
) -> Tuple[Graph, Script]:
    """
    Evaluate a workflow script into a fresh Graph.

    Returns:
        (graph, script) where script.options holds the script's defaults.
    """
    wf_path = Path(path).expanduser().resolve()
    if not wf_path.is_file():
        raise ConfigurationError("script_missing", path=str(path))

    graph = Graph()
    script = Script(graph, wf_path, plusargs)
    module_name = f"jobdag_workflow_{wf_path.stem}"
    runpy.run_path(str(wf_path), init_globals=script.namespace(), run_name=module_name)

    logger.debug("loaded %d job(s) from %s", len(graph), wf_path)
    return graph, script
