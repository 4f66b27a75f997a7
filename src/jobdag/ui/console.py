"""Console output formatting utilities for jobdag."""

from __future__ import annotations

import os
import sys
from typing import Optional

import click

from ..stats import Summary


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False, color: Optional[bool] = None):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
            color: Force color on/off; None means auto-detect (and honor NO_COLOR)
        """
        self.debug = debug
        if color is None and os.environ.get("NO_COLOR"):
            color = False
        self.color = color
        self._last_slot: Optional[int] = None

    def _echo(self, message: str, err: bool = False) -> None:
        click.echo(message, err=err, color=self.color)

    def print_run_started(self, workflow: str, job_count: int, max_jobs: int, output_directory: str) -> None:
        """Print run start information."""
        self._echo(f"Workflow: {workflow}")
        self._echo(f"Jobs: {job_count}  Slots: {max_jobs}  Output: {output_directory}")

    def print_job_started(self, name: str, slot_index: int, command: str) -> None:
        """Print job start message (debug only)."""
        self.print_debug(f"STARTED: '{name}' slot:{slot_index} command:{command}")

    def slot_label(self, slot_index: Optional[int]) -> str:
        """
        Label the slot of a finished job.

        A slot equal to the one freed by the previous completion is shown as
        "recycled". Call once per completion, in completion order.
        """
        label = "recycled" if slot_index is not None and slot_index == self._last_slot else str(slot_index)
        self._last_slot = slot_index
        return label

    def print_job_result(self, name: str, slot_index: int, exit_code: Optional[int], passed: bool) -> None:
        """Print a PASSED/FAILED line for a finished job."""
        status = "PASSED" if passed else "FAILED"
        code = "n/a" if exit_code is None else str(exit_code)
        styled = click.style(f"{status}:", fg="green" if passed else "red", bold=True)
        self._echo(f"{styled} '{name}' slot:{self.slot_label(slot_index)} exitcode:{code}")

    def print_job_skipped(self, name: str, reason: str) -> None:
        """Print job skipped message."""
        styled = click.style("SKIPPED:", fg="yellow", bold=True)
        self._echo(f"{styled} '{name}' ({reason})")

    def print_summary(self, summary: Summary) -> None:
        """Print final results summary."""
        self._echo(
            f"Passed: {summary.passed}  Failed: {summary.failed}  Skipped: {summary.skipped}"
            f"  Time: {summary.elapsed:.1f}s"
        )
        if summary.slowest is not None and self.debug:
            self.print_debug(f"slowest: '{summary.slowest.name}' {summary.slowest.duration:.1f}s")

    def print_dot(self, dot: str) -> None:
        self._echo(dot)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self._echo(click.style(f"ERROR: {title}", fg="red", bold=True), err=True)
        self._echo(message, err=True)
        if details:
            for detail in details:
                self._echo(f"  {detail}", err=True)
        if suggestion:
            self._echo(f"\n{suggestion}", err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        else:
            self._echo(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._echo(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._echo(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
