"""The str, pix and js helpers every template context receives.

These match the helpers available to the server-side PHP renderer:
    {{#str}}key, component, param{{/str}}
    {{#pix}}key, component, alt text{{/pix}}
    {{#js}}javascript{{/js}}
"""

from __future__ import annotations

import json
from typing import Any

from moodlekit.config.schema import SiteConfig, TemplatesConfig
from moodlekit.strings.resolver import StringRequest
from moodlekit.templates.cache import TemplateCache
from moodlekit.templates.engine import MustacheEngine
from moodlekit.templates.render_pass import RenderPass
from moodlekit.templates.values import RenderFn, SectionLambda
from moodlekit.url import image_url
from moodlekit.utils.exceptions import MoodleKitError, StringArgumentError, ErrorCategory


def split_helper_args(text: str, count: int) -> list[str]:
    """Split on commas into count fields; the last field keeps any extra commas."""
    parts = text.split(",")
    head = [part.strip() for part in parts[: count - 1]]
    tail = ",".join(parts[count - 1:]).strip()
    fields = head + ([tail] if len(parts) >= count else [])
    return fields + [""] * (count - len(fields))


def make_string_helper(render_pass: RenderPass) -> SectionLambda:
    def string_helper(text: str, render: RenderFn) -> str:
        key, component, param_text = split_helper_args(text, 3)
        param: Any = None
        if param_text:
            # Variable expansion is allowed in the param part only.
            param_text = render(param_text)
            param = param_text
            if param_text.startswith("{") and not param_text.startswith("{{"):
                try:
                    param = json.loads(param_text)
                except json.JSONDecodeError as exc:
                    raise StringArgumentError(key, component, param_text, str(exc)) from exc
        return render_pass.require_string(StringRequest(key=key, component=component, param=param))

    return SectionLambda(string_helper, "str")


def make_pix_helper(
    cache: TemplateCache,
    engine: MustacheEngine,
    site: SiteConfig,
    templates: TemplatesConfig,
) -> SectionLambda:
    def pix_helper(text: str, render: RenderFn) -> str:
        key, component, alt = split_helper_args(text, 3)
        icon = cache.peek(templates.icon_template)
        if icon is None:
            raise MoodleKitError(
                f"Icon template '{templates.icon_template}' is not loaded",
                code="ICON_TEMPLATE_MISSING",
                category=ErrorCategory.RENDER,
            )
        context = {"src": image_url(key, component, site), "alt": alt, "class": templates.icon_class}
        return engine.render(icon, context, name=templates.icon_template).strip()

    return SectionLambda(pix_helper, "pix")


def make_js_helper(render_pass: RenderPass) -> SectionLambda:
    def js_helper(text: str, render: RenderFn) -> str:
        render_pass.require_js(render(text))
        return ""

    return SectionLambda(js_helper, "js")
