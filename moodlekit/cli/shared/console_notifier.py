"""Interactive notifier for the terminal."""

from __future__ import annotations

import asyncio

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from moodlekit.utils.exceptions import format_error


class ConsoleNotifier:
    def __init__(self, console: Console):
        self.console = console

    def exception(self, exc: BaseException) -> None:
        logger.error(format_error(exc, include_details=True))
        self.console.print(f"[red]{escape(format_error(exc, include_details=True))}[/red]")

    async def confirm(self, title: str, question: str, yes_label: str, no_label: str) -> bool:
        self.console.print(Panel(question, title=title, border_style="yellow"))
        return await asyncio.to_thread(typer.confirm, f"{yes_label}? (no = {no_label})", default=True)
