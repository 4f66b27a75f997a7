# errors.py
from __future__ import annotations

from typing import Any, Dict


# Message templates keyed by error kind. Fields are filled in when the error
# is rendered, so the raising code only deals in structured values.
MESSAGES: Dict[str, str] = {
    "undefined_predecessor": (
        "job '{job}' references undefined predecessor job(s) '{predecessors}' @ {location}"
    ),
    "incomplete_job": (
        "job '{job}' definition is incomplete @ {location}\n"
        "\n"
        "  Example:\n"
        "\n"
        "    job(\"{job}\", \"<command>\"[, needs=[...]])\n"
        "\n"
        "    @task(\"{job}\"[, needs=[...]])\n"
        "    def {ident}(out):\n"
        "        ...\n"
    ),
    "invalid_action": "job '{job}' action must be a command line or a callable, got {kind} @ {location}",
    "invalid_job_name": "job name must be a non-blank string, got {name!r} @ {location}",
    "duplicate_job": "job '{job}' is already defined @ {location}",
    "import_prefix": "import prefix argument must be a non-blank string @ {location}",
    "import_missing": "file '{path}' not found @ {location}",
    "import_collision": "import prefix '{prefix}' produces job name(s) already defined: '{jobs}' @ {location}",
    "script_missing": "file does not exist: {path}",
    "cycle": "job graph contains a cycle involving: '{jobs}'",
    "invalid_option": "invalid option {name}: {reason}",
    "slot_not_held": "slot {slot} released but was not acquired",
    "unknown_job": "unknown job '{job}'",
    "bad_transition": "job '{job}' cannot go from {current} to {target}",
    "deadlock": "no job can make progress; stuck: '{jobs}'",
    "pool_empty": "wait_any() called with nothing in flight",
    "duplicate_report": "job '{job}' reported twice",
}


def _join(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return "', '".join(sorted(str(v) for v in value))
    return value


class JobdagError(Exception):
    """
    Base error carrying a kind and structured fields.

    str(error) renders the template for the kind, so messages are produced at
    the boundary that prints them.
    """

    def __init__(self, kind: str, /, **fields: Any):
        self.kind = kind
        self.fields = fields
        super().__init__(kind)

    def __str__(self) -> str:
        template = MESSAGES.get(self.kind)
        if template is None:
            return f"{self.kind}: {self.fields}"
        values = {k: _join(v) for k, v in self.fields.items()}
        values.setdefault("location", "<unknown>")
        try:
            return template.format(**values)
        except KeyError:
            return f"{self.kind}: {self.fields}"


class DefinitionError(JobdagError):
    """Graph construction failed (undefined predecessor, incomplete job, ...)."""


class ArgumentError(DefinitionError):
    """A workflow command was called with invalid arguments."""


class ConfigurationError(JobdagError):
    """The graph or the options cannot be run as given."""


class InvariantError(JobdagError):
    """Internal bookkeeping went wrong. Never expected in a correct run."""
