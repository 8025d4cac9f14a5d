"""Process-lifetime template source cache, filled through the AJAX dispatcher."""

from __future__ import annotations

import asyncio

from loguru import logger

from moodlekit.ajax.dispatcher import AjaxDispatcher
from moodlekit.ajax.protocol import RemoteCall
from moodlekit.utils.exceptions import ValidationError

LOAD_TEMPLATE_METHOD = "core_output_load_template"


def split_template_name(name: str) -> tuple[str, str]:
    """Split 'component/template' (e.g. core/pix_icon, tool_bananas/yellow)."""
    parts = name.split("/")
    if len(parts) < 2 or not parts[0].strip() or not parts[1].strip():
        raise ValidationError(f"Template name must look like 'component/template', got '{name}'", field="name")
    return parts[0].strip(), parts[1].strip()


class TemplateCache:
    """
    Maps qualified template names to their mustache source.

    Entries are inserted once (first fetch wins) and never expire. A miss costs
    exactly one core_output_load_template call; concurrent misses for the same
    name wait on that single fetch. Failed fetches are not cached.
    """

    def __init__(self, dispatcher: AjaxDispatcher):
        self.dispatcher = dispatcher
        self._entries: dict[str, str] = {}
        self._pending: dict[str, asyncio.Future] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, name: str) -> str | None:
        """Synchronous lookup; None on miss. Never fetches."""
        return self._entries.get(name)

    def seed(self, name: str, source: str) -> str:
        """Insert a template without fetching it. Existing entries win."""
        split_template_name(name)
        return self._entries.setdefault(name, source)

    async def resolve(self, name: str) -> str:
        cached = self._entries.get(name)
        if cached is not None:
            return cached

        pending = self._pending.get(name)
        if pending is not None:
            return await asyncio.shield(pending)

        component, template = split_template_name(name)
        loop = asyncio.get_running_loop()
        pending = loop.create_future()
        self._pending[name] = pending
        logger.debug(f"template cache miss: {name}")
        try:
            handles = await self.dispatcher.call(
                [RemoteCall(methodname=LOAD_TEMPLATE_METHOD, args={"component": component, "template": template})]
            )
            source = await handles[0]
        except asyncio.CancelledError:
            pending.cancel()
            raise
        except Exception as exc:
            pending.set_exception(exc)
            pending.exception()
            raise
        finally:
            self._pending.pop(name, None)

        source = self._entries.setdefault(name, str(source))
        pending.set_result(source)
        return source
