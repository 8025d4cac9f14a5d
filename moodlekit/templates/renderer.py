"""
Template renderer: fetch, expand, then resolve deferred strings.

A render is:
1. resolve the template source (cache or core_output_load_template);
2. make sure the icon template is cached, since {{#pix}} renders it inline;
3. expand synchronously with the str/pix/js helpers bound to a fresh RenderPass;
4. fetch every string the pass asked for in one batch and swap the {{_sN}}
   placeholders for the text by plain replacement (never a second template
   pass: fetched text may contain mustache-looking delimiters);
5. join the captured js blocks and substitute placeholders there as well.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple

from loguru import logger

from moodlekit.config.schema import SiteConfig, TemplatesConfig
from moodlekit.strings.resolver import StringResolver
from moodlekit.templates.cache import TemplateCache
from moodlekit.templates.engine import MustacheEngine
from moodlekit.templates.helpers import make_js_helper, make_pix_helper, make_string_helper
from moodlekit.templates.render_pass import RenderPass, substitute_strings
from moodlekit.utils.exceptions import ValidationError


class RenderResult(NamedTuple):
    html: str
    js: str


def embed_template_js(js: str) -> str:
    """Wrap a script block in a script element, ready to append after the markup."""
    if not js:
        return ""
    body = js.replace("</", "<\\/")
    return f'<script type="text/javascript">\n{body}\n</script>'


class TemplateRenderer:
    def __init__(
        self,
        cache: TemplateCache,
        strings: StringResolver,
        *,
        engine: MustacheEngine | None = None,
        site: SiteConfig | None = None,
        templates: TemplatesConfig | None = None,
    ):
        self.cache = cache
        self.strings = strings
        self.engine = engine or MustacheEngine()
        self.site = site or SiteConfig()
        self.templates = templates or TemplatesConfig()

    async def render(self, name: str, context: Mapping[str, Any] | None = None) -> RenderResult:
        """Render a named template ('component/template') against context."""
        source = await self.cache.resolve(name)
        return await self.render_source(source, context, name=name)

    async def render_source(
        self,
        source: str,
        context: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> RenderResult:
        await self.cache.resolve(self.templates.icon_template)

        render_pass = RenderPass()
        view = self._augment(context, render_pass)
        html = self.engine.render(source, view, partials=self.cache.peek, name=name)

        strings: list[str] = []
        if render_pass.required_strings:
            strings = await self.strings.get_strings(render_pass.required_strings)
            html = substitute_strings(html, strings)

        logger.debug(
            f"rendered {name or '<source>'} uniqid={render_pass.uniqid} "
            f"strings={len(render_pass.required_strings)} js={len(render_pass.required_js)}"
        )
        return RenderResult(html.strip(), render_pass.script_block(strings))

    def _augment(self, context: Mapping[str, Any] | None, render_pass: RenderPass) -> dict[str, Any]:
        if context is None:
            view: dict[str, Any] = {}
        elif isinstance(context, Mapping):
            view = dict(context)
        else:
            raise ValidationError(
                f"Template context must be a mapping, got {type(context).__name__}",
                field="context",
            )
        view["uniqid"] = render_pass.uniqid
        view["str"] = make_string_helper(render_pass)
        view["pix"] = make_pix_helper(self.cache, self.engine, self.site, self.templates)
        view["js"] = make_js_helper(render_pass)
        view["globals"] = {"config": self.site.public_globals()}
        return view
