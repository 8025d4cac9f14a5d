"""Wires dispatcher, caches, renderer and keepalive for one Moodle site."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from moodlekit.ajax.dispatcher import AjaxDispatcher, BatchTransport
from moodlekit.ajax.transport import HttpBatchTransport
from moodlekit.config.schema import Config
from moodlekit.notification import LoggingNotifier, Notifier
from moodlekit.session.keepalive import SessionKeepalive, start_keepalive
from moodlekit.strings.resolver import StringResolver
from moodlekit.templates.cache import TemplateCache
from moodlekit.templates.engine import MustacheEngine
from moodlekit.templates.renderer import TemplateRenderer


@dataclass
class MoodleClient:
    config: Config
    dispatcher: AjaxDispatcher
    strings: StringResolver
    templates: TemplateCache
    renderer: TemplateRenderer
    notifier: Notifier

    def build_keepalive(self, keepalive_frequency: float | None = None) -> SessionKeepalive:
        session = self.config.session
        frequency = session.keepalive_frequency if keepalive_frequency is None else keepalive_frequency
        return SessionKeepalive(
            self.dispatcher,
            self.strings,
            self.notifier,
            session_timeout=session.session_timeout,
            keepalive_frequency=frequency,
            warning_floor=session.warning_floor_seconds,
        )

    def start_keepalive(self, keepalive_frequency: float | None = None) -> SessionKeepalive:
        """Start the process-wide keepalive (no-op if one is already running)."""
        return start_keepalive(self.build_keepalive(keepalive_frequency))


def create_client(
    config: Config | None = None,
    *,
    transport: BatchTransport | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
    notifier: Notifier | None = None,
) -> MoodleClient:
    """Build a client; pass http_transport (e.g. httpx.MockTransport) or a whole BatchTransport to fake the site."""
    cfg = config or Config()
    dispatcher = AjaxDispatcher(transport or HttpBatchTransport(cfg, transport=http_transport))
    strings = StringResolver(
        dispatcher,
        lang=cfg.site.lang,
        send_params=cfg.strings.send_params,
        cache=cfg.strings.cache,
    )
    cache = TemplateCache(dispatcher)
    renderer = TemplateRenderer(
        cache,
        strings,
        engine=MustacheEngine(),
        site=cfg.site,
        templates=cfg.templates,
    )
    return MoodleClient(
        config=cfg,
        dispatcher=dispatcher,
        strings=strings,
        templates=cache,
        renderer=renderer,
        notifier=notifier or LoggingNotifier(),
    )
