"""Allow running as ``python -m til``."""

from til.cli import app

app()
