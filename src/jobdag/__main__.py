from jobdag.cli import cli

cli()
