from kopsai.cli.main import cli

cli()
