"""Module execution: python -m gophermart.scripts"""

from gophermart.scripts.cli import cli

cli()
