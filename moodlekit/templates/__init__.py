"""Mustache templates rendered the way the browser-side core/templates module renders them."""

from moodlekit.templates.cache import TemplateCache, split_template_name
from moodlekit.templates.engine import MustacheEngine, escape_html
from moodlekit.templates.render_pass import RenderPass, substitute_strings
from moodlekit.templates.renderer import RenderResult, TemplateRenderer, embed_template_js
from moodlekit.templates.values import SectionLambda, ValueKind, kind_of

__all__ = [
    "MustacheEngine",
    "RenderPass",
    "RenderResult",
    "SectionLambda",
    "TemplateCache",
    "TemplateRenderer",
    "ValueKind",
    "embed_template_js",
    "escape_html",
    "kind_of",
    "split_template_name",
    "substitute_strings",
]
