"""Allow ``python -m syncfree``."""

from syncfree.cli import app

app()
