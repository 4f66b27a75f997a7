# dispatch.py
from __future__ import annotations

import logging
from typing import List, Optional

from .dag import Graph
from .errors import InvariantError
from .model import ExecutionRecord, Job, Outcome
from .pool import Pool
from .slots import Slots
from .stats import Stats
from .ui.console import Console, get_console

logger = logging.getLogger(__name__)


class Dispatch:
    """
    The scheduling loop.

    Launches ready jobs into free slots, waits for any of them to finish,
    feeds the exit back into the graph and repeats until every job is
    succeeded, failed or skipped. A failure only takes down its own
    descendants; independent branches keep running.
    """

    def __init__(
        self,
        *,
        graph: Graph,
        slots: Slots,
        pool: Pool,
        stats: Optional[Stats] = None,
        ui: Optional[Console] = None,
    ):
        self.graph = graph
        self.slots = slots
        self.pool = pool
        self.stats = stats if stats is not None else Stats()
        self.ui = ui if ui is not None else get_console()

    def run(self) -> bool:
        """
        Run the graph to completion.

        Returns:
            True when no job failed.
        """
        self.graph.validate()

        try:
            while not self.graph.is_finished():
                self._launch_ready()

                # Nothing running after a launch pass means nothing could start.
                if self.pool.active_count() == 0:
                    stuck = [j.name for j in self.graph if not j.state.terminal]
                    raise InvariantError("deadlock", jobs=stuck)

                self._harvest(self.pool.wait_any())
        except KeyboardInterrupt:
            self.pool.terminate_all()
            raise
        finally:
            self.stats.stop()

        return self.stats.ok

    @property
    def exit_status(self) -> int:
        return 0 if self.stats.ok else 1

    def _launch_ready(self) -> None:
        # Launching never makes another job ready, so one snapshot suffices.
        ready: List[Job] = self.graph.ready_jobs()[: self.slots.available_count()]
        for job in ready:
            slot = self.slots.acquire()
            self.graph.mark_started(job.name, slot)
            self.ui.print_job_started(job.name, slot, job.command)
            self.pool.launch(job, slot)

    def _harvest(self, record: ExecutionRecord) -> None:
        self.slots.release(record.slot_index)
        skipped = self.graph.mark_finished(record.job, record.exit_code)

        outcome = Outcome.PASSED if record.passed else Outcome.FAILED
        self.stats.record(record.job, record.exit_code, record.slot_index, outcome, record.duration)
        self.ui.print_job_result(record.job, record.slot_index, record.exit_code, record.passed)

        for job in skipped:
            self.stats.record(job.name, None, None, Outcome.SKIPPED)
            self.ui.print_job_skipped(job.name, f"predecessor '{record.job}' failed")
        logger.debug(
            "%d running, %d free slot(s) after %r", self.pool.active_count(), self.slots.available_count(), record.job
        )
