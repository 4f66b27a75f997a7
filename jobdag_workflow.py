# jobdag_workflow.py
# Workflow for checking jobdag itself: lint, format, tests and packaging.
#
#   jobdag run jobdag_workflow.py -j4
#   jobdag run jobdag_workflow.py +quick      # lint and tests only
#   jobdag run jobdag_workflow.py --dot | dot -Tsvg > jobs.svg

options(output_directory=".jobdag/output")

# Lint job - runs ruff on the codebase
job("lint", "ruff check src tests")

# Format check job - ensures code is properly formatted
job("format-check", "ruff format --check src tests")

# Test job - runs pytest once lint is clean
job("test", "python -m pytest -q", needs=["lint"])

if not plusargs.get("quick"):
    # Type check job (if mypy is available)
    job("type-check", "python -m mypy src/jobdag --ignore-missing-imports")

    # Config check - validates project configuration
    @task(needs=["lint"])
    def config_check(out):
        import tomllib

        with open("pyproject.toml", "rb") as fh:
            project = tomllib.load(fh)["project"]
        out.write(f"{project['name']} {project['version']}\n")

    # Build job - only after every check passed
    job("build", "python -m pip wheel --no-deps -w dist .", needs=["test", "format-check", "type-check", "config_check"])
