"""Side-channel notifications (errors, prompts) for background work."""

from __future__ import annotations

from typing import Protocol

from loguru import logger

from moodlekit.utils.exceptions import format_error


class Notifier(Protocol):
    def exception(self, exc: BaseException) -> None:
        ...

    async def confirm(self, title: str, question: str, yes_label: str, no_label: str) -> bool:
        ...


class LoggingNotifier:
    """Non-interactive notifier: logs everything, declines every prompt."""

    def exception(self, exc: BaseException) -> None:
        logger.error(format_error(exc, include_details=True))

    async def confirm(self, title: str, question: str, yes_label: str, no_label: str) -> bool:
        logger.warning(f"{title}: {question} [{yes_label}/{no_label}] (no interactive console, declining)")
        return False
