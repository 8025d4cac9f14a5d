"""Allow `python -m moodlekit`."""

from moodlekit.cli.commands import app

app()
