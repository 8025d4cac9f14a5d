"""
Session keepalive loop.

Two modes, chosen once at construction:
- touch: every keepalive_frequency seconds call core_session_touch;
- check: every session_timeout / 10 seconds ask core_session_time_remaining and,
  when less than warning_limit is left, prompt the user (once per such poll)
  and back off to warning_limit before asking again.

Any failed call is reported through the notifier and ends the loop; there is
no retry. At most one keepalive runs per process (see start_keepalive).
"""

from __future__ import annotations

import asyncio
import contextlib
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger

from moodlekit.ajax.dispatcher import AjaxDispatcher
from moodlekit.notification import Notifier
from moodlekit.strings.resolver import StringRequest, StringResolver

TOUCH_METHOD = "core_session_touch"
TIME_REMAINING_METHOD = "core_session_time_remaining"

EXTEND_LABEL = "Extend session"
CANCEL_LABEL = "Cancel"


class KeepaliveMode(Enum):
    TOUCH = "touch"
    CHECK = "check"


class KeepaliveState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


def _seconds_remaining(payload: Any) -> float:
    if isinstance(payload, dict):
        payload = payload.get("timeremaining", 0)
    return float(payload or 0)


class SessionKeepalive:
    def __init__(
        self,
        dispatcher: AjaxDispatcher,
        strings: StringResolver,
        notifier: Notifier,
        *,
        session_timeout: float,
        keepalive_frequency: float = 0,
        warning_floor: float = 900,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.dispatcher = dispatcher
        self.strings = strings
        self.notifier = notifier
        self.keepalive_frequency = keepalive_frequency
        self.mode = KeepaliveMode.TOUCH if keepalive_frequency > 0 else KeepaliveMode.CHECK
        self.check_frequency = session_timeout / 10
        self.warning_limit = max(self.check_frequency * 2, warning_floor)
        self.state = KeepaliveState.STOPPED
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._prompt_task: asyncio.Task | None = None
        self._prompts: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.state is KeepaliveState.RUNNING

    @property
    def pending_prompt(self) -> asyncio.Task | None:
        """The in-flight 'session is about to expire' prompt, if any."""
        return self._prompt_task

    @property
    def initial_delay(self) -> float:
        if self.mode is KeepaliveMode.TOUCH:
            return self.keepalive_frequency
        return self.check_frequency

    def start(self) -> bool:
        """STOPPED -> RUNNING. Returns False, changing nothing, when already running."""
        if self.state is KeepaliveState.RUNNING:
            logger.debug("session keepalive already running")
            return False
        self.state = KeepaliveState.RUNNING
        logger.info(f"session keepalive started in {self.mode.value} mode")
        self._task = asyncio.create_task(self.run())
        return True

    async def wait(self) -> None:
        """Wait until the loop ends on its own (a failed call) or is stopped."""
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def run(self) -> None:
        delay: float | None = self.initial_delay
        try:
            while delay is not None and self.state is KeepaliveState.RUNNING:
                await self._sleep(delay)
                delay = await self.poll()
        finally:
            self.state = KeepaliveState.STOPPED
            logger.info("session keepalive stopped")

    async def poll(self) -> float | None:
        """One poll; returns the delay before the next one, or None to stop."""
        if self.mode is KeepaliveMode.TOUCH:
            return await self.touch_session()
        return await self.check_session()

    async def touch_session(self) -> float | None:
        try:
            await self.dispatcher.call_one(TOUCH_METHOD)
        except Exception as exc:
            self.notifier.exception(exc)
            return None
        return self.keepalive_frequency

    async def check_session(self) -> float | None:
        try:
            remaining = _seconds_remaining(await self.dispatcher.call_one(TIME_REMAINING_METHOD))
        except Exception as exc:
            self.notifier.exception(exc)
            return None
        if remaining < self.warning_limit:
            logger.warning(f"session expires in {remaining:.0f}s")
            self._prompt_task = asyncio.create_task(self._warn())
            self._prompts.add(self._prompt_task)
            self._prompt_task.add_done_callback(self._prompts.discard)
            return self.warning_limit
        return self.check_frequency

    async def _warn(self) -> None:
        try:
            title, question = await self.strings.get_strings([
                StringRequest(key="inactive", component="moodle"),
                StringRequest(key="sessiontimeoutsoon", component="error"),
            ])
            extend = await self.notifier.confirm(title, question, EXTEND_LABEL, CANCEL_LABEL)
            if extend:
                await self.dispatcher.call_one(TOUCH_METHOD)
        except Exception as exc:
            self.notifier.exception(exc)

    async def stop(self) -> None:
        """RUNNING -> STOPPED; cancels the loop and every open prompt."""
        self.state = KeepaliveState.STOPPED
        for task in (self._task, *self._prompts):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task


_active: SessionKeepalive | None = None


def start_keepalive(keepalive: SessionKeepalive) -> SessionKeepalive:
    """Start keepalive unless one is already running in this process.

    Returns whichever instance is running afterwards.
    """
    global _active
    if _active is not None and _active.running:
        logger.debug("a session keepalive is already active; ignoring start")
        return _active
    _active = keepalive
    keepalive.start()
    return keepalive


def get_active_keepalive() -> SessionKeepalive | None:
    return _active


async def stop_keepalive() -> None:
    global _active
    if _active is not None:
        await _active.stop()
    _active = None
