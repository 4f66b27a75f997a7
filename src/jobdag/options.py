# options.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from . import settings
from .dsl import ScriptOptions
from .errors import ConfigurationError


class Options(BaseModel):
    """Everything a run needs besides the graph."""
    max_jobs: int = Field(default=1, ge=1)
    output_directory: str = settings.OUTPUT_DIRECTORY
    dot: bool = False
    verbosity: int = Field(default=0, ge=0)
    debug: bool = False


def expand_path(value: str) -> str:
    return os.path.expandvars(os.path.expanduser(value))


def output_directory_for(script: ScriptOptions, script_path: Path) -> Optional[str]:
    """The script's output directory, resolved against the script file."""
    if script.output_directory is None:
        return None
    expanded = Path(expand_path(script.output_directory))
    if expanded.is_absolute():
        return str(expanded)
    return str(script_path.parent / expanded)


def merge_options(cli: Dict[str, Any], script: ScriptOptions, script_path: Path) -> Options:
    """
    Combine command line values with the script's options(...) call.

    max_jobs: command line, then script, then settings default.
    output_directory: script (relative to the script file), then command
    line, then settings default.
    """
    values: Dict[str, Any] = {k: v for k, v in cli.items() if v is not None}

    if values.get("max_jobs") is None:
        values["max_jobs"] = script.max_jobs if script.max_jobs is not None else settings.MAX_JOBS

    script_dir = output_directory_for(script, script_path)
    if script_dir is not None:
        values["output_directory"] = script_dir
    elif "output_directory" in values:
        values["output_directory"] = expand_path(values["output_directory"])

    try:
        return Options(**values)
    except ValidationError as e:
        err = e.errors()[0]
        name = ".".join(str(p) for p in err.get("loc", ())) or "options"
        raise ConfigurationError("invalid_option", name=name, reason=err.get("msg", str(e))) from e
