# pool.py
from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
import time
import traceback
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple, Union

from .errors import InvariantError
from .model import Callable, Command, ExecutionRecord, Job

logger = logging.getLogger(__name__)

# A command line containing any of these goes through the shell.
SHELL_METACHARACTERS = frozenset("*?{}[]<>()~&|\\$;'`\"\n#=%")


def command_args(line: str) -> Tuple[Union[str, List[str]], bool]:
    """
    Decide how a command line is executed.

    Plain command lines are split and exec'd directly, so a missing executable
    surfaces as a spawn error rather than a shell exit status.

    Returns:
        (args, shell) suitable for subprocess.Popen
    """
    if any(c in SHELL_METACHARACTERS for c in line):
        return line, True
    return shlex.split(line), False


def spawn_error_line(command: str, job: str, exc: OSError) -> str:
    if exc.strerror and exc.filename:
        reason = f"{exc.strerror} - {exc.filename}"
    else:
        reason = exc.strerror or str(exc)
    return f"ERROR: failed to spawn command '{command}' for job '{job}': {reason}"


@dataclass
class Execution:
    """An in-flight job. `process` is set once a child process exists."""
    job: Job
    slot_index: int
    output: Path
    started_at: float
    finished_at: Optional[float] = None
    process: Optional[subprocess.Popen] = None


class Pool:
    """
    In-flight executions, each running on a worker thread.

    Commands run as child processes; callables run on the worker thread
    itself. Either way the combined output lands in <output_directory>/<slot>.
    """

    def __init__(self, output_directory: Union[str, Path], max_workers: Optional[int] = None):
        self.output_directory = Path(output_directory)
        self.output_directory.mkdir(parents=True, exist_ok=True)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="jobdag")
        self._in_flight: Dict[Future, Execution] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> Pool:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.terminate_all()
        self.shutdown()

    def sink_path(self, slot_index: int) -> Path:
        return self.output_directory / str(slot_index)

    def launch(self, job: Job, slot_index: int) -> Execution:
        execution = Execution(
            job=job,
            slot_index=slot_index,
            output=self.sink_path(slot_index),
            started_at=time.monotonic(),
        )
        with self._lock:
            fut = self._executor.submit(self._run, execution)
            self._in_flight[fut] = execution
        logger.debug("launched %r in slot %d: %s", job.name, slot_index, job.command)
        return execution

    def wait_any(self) -> ExecutionRecord:
        """Block until some execution finishes, then hand back its record."""
        with self._lock:
            futures = list(self._in_flight)
        if not futures:
            raise InvariantError("pool_empty")

        fut = next(as_completed(futures))
        with self._lock:
            execution = self._in_flight.pop(fut)

        exit_code = fut.result()
        record = ExecutionRecord(
            job=execution.job.name,
            slot_index=execution.slot_index,
            exit_code=exit_code,
            started_at=execution.started_at,
            finished_at=execution.finished_at or time.monotonic(),
            output=str(execution.output),
        )
        logger.debug("harvested %r from slot %d exit=%s", record.job, record.slot_index, exit_code)
        return record

    def active_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def terminate_all(self) -> None:
        """Terminate every child process still running."""
        with self._lock:
            executions = list(self._in_flight.values())
        for execution in executions:
            proc = execution.process
            if proc is not None and proc.poll() is None:
                logger.info("terminating %r (pid %d)", execution.job.name, proc.pid)
                proc.terminate()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _run(self, execution: Execution) -> Optional[int]:
        # Whatever happens here becomes the job's exit code; nothing may
        # escape into the dispatch thread through the future.
        job = execution.job
        try:
            with open(execution.output, "w") as sink:
                if isinstance(job.action, Command):
                    return self._run_command(execution, job.action, sink)
                return _run_callable(job.action, sink)
        except Exception:
            logger.exception("job %r could not run in slot %d", job.name, execution.slot_index)
            return None
        finally:
            execution.finished_at = time.monotonic()

    def _run_command(self, execution: Execution, command: Command, sink: TextIO) -> Optional[int]:
        args, shell = command_args(command.line)
        env = os.environ.copy()
        env.update({"JOBDAG_JOB": execution.job.name, "JOBDAG_SLOT": str(execution.slot_index)})

        try:
            proc = subprocess.Popen(
                args,
                shell=shell,
                stdin=subprocess.DEVNULL,
                stdout=sink,
                stderr=subprocess.STDOUT,
                env=env,
            )
        except OSError as e:
            sink.write(spawn_error_line(command.line, execution.job.name, e))
            logger.debug("spawn failed for %r: %s", execution.job.name, e)
            return None

        execution.process = proc
        return proc.wait()


def _run_callable(action: Callable, sink: TextIO) -> int:
    try:
        result = action.func(sink)
    except SystemExit as e:
        # Same mapping the interpreter applies to sys.exit(code).
        if e.code is None:
            return 0
        if isinstance(e.code, int):
            return int(e.code)
        sink.write(f"{e.code}\n")
        return 1
    except Exception:
        traceback.print_exc(file=sink)
        return 1

    if result is None or result is True:
        return 0
    if result is False:
        return 1
    if isinstance(result, int):
        return result
    sink.write(f"unexpected return value {result!r}, treated as failure\n")
    return 1
