# cli.py
from __future__ import annotations

import logging
import sys

import click

from jobdag import settings
from jobdag.dispatch import Dispatch
from jobdag.dsl import load_graph, parse_plusargs
from jobdag.errors import ConfigurationError, DefinitionError, InvariantError, JobdagError
from jobdag.options import merge_options
from jobdag.pool import Pool
from jobdag.slots import Slots
from jobdag.stats import Stats
from jobdag.ui.console import Console, get_console, set_console

HELP_HINT = "See `jobdag run --help`"


def configure_logging(verbosity: int, debug: bool) -> None:
    if debug or verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=settings.LOG_FORMAT, stream=sys.stderr)


def _error_title(exc: JobdagError) -> str:
    if isinstance(exc, DefinitionError):
        return "Invalid job definition"
    if isinstance(exc, ConfigurationError):
        return "Invalid configuration"
    if isinstance(exc, InvariantError):
        return "Internal error"
    return "jobdag error"


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """jobdag — run a graph of dependent jobs in a bounded number of slots."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.argument("script")
@click.argument("plusargs", nargs=-1)
@click.option("-j", "--max-jobs", default=None, type=int, help=f"Number of slots [default: {settings.MAX_JOBS}]")
@click.option(
    "-d",
    "--output-directory",
    default=None,
    help=f"Directory for per-slot output files [default: {settings.OUTPUT_DIRECTORY}]",
)
@click.option("--dot", is_flag=True, default=False, help="Print the job graph in DOT format instead of running it")
@click.option("-v", "--verbose", count=True, help="More log output (repeat for debug logs)")
@click.pass_context
def run(ctx, script, plusargs, max_jobs, output_directory, dot, verbose):
    """
    Run the jobs defined in SCRIPT.

    Arguments of the form +name=value (or +flag) are passed to the script
    as the `plusargs` dict.
    """
    console = get_console()
    debug = ctx.obj.get("debug", False)
    configure_logging(verbose, debug)

    unknown = [a for a in plusargs if not a.startswith("+")]
    if unknown:
        console.print_error("Usage", f"unrecognized argument(s): {' '.join(unknown)}", suggestion=HELP_HINT)
        sys.exit(2)

    try:
        graph, user_script = load_graph(script, parse_plusargs(plusargs))
        options = merge_options(
            {
                "max_jobs": max_jobs,
                "output_directory": output_directory,
                "dot": dot,
                "verbosity": verbose,
                "debug": debug,
            },
            user_script.options,
            user_script.path,
        )

        if options.dot:
            console.print_dot(graph.to_dot())
            return

        graph.validate()
        console.print_run_started(
            workflow=script,
            job_count=len(graph),
            max_jobs=options.max_jobs,
            output_directory=options.output_directory,
        )

        stats = Stats()
        slots = Slots(options.max_jobs)
        with Pool(options.output_directory, max_workers=options.max_jobs) as pool:
            ok = Dispatch(graph=graph, slots=slots, pool=pool, stats=stats, ui=console).run()

        console.print_summary(stats.summary())
        if not ok:
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except InvariantError as e:
        console.print_error(_error_title(e), str(e))
        if debug:
            console.print_exception(e)
        sys.exit(1)
    except JobdagError as e:
        console.print_error(_error_title(e), str(e), suggestion=HELP_HINT)
        if debug:
            console.print_exception(e)
        sys.exit(2)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
