from __future__ import annotations
import os

# Raw value; Options validates it.
MAX_JOBS = os.environ.get("JOBDAG_MAX_JOBS", str(os.cpu_count() or 1))
OUTPUT_DIRECTORY = os.environ.get("JOBDAG_OUTPUT_DIR", "jobdag-output")
LOG_FORMAT = os.environ.get("JOBDAG_LOG_FORMAT", "%(levelname)s %(name)s: %(message)s")
