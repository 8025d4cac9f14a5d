"""Synchronous mustache expansion.

Expansion never suspends: everything a template needs (partials, icon
sub-templates) must already be available when render() is called.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from moodlekit.templates.lexer import parse
from moodlekit.templates.nodes import Node, Partial, Section, Template, Text, Variable
from moodlekit.templates.values import (
    SectionLambda,
    ValueKind,
    is_truthy,
    kind_of,
    lookup_member,
    to_text,
)
from moodlekit.utils.exceptions import MoodleKitError, ErrorCategory

PartialLoader = Callable[[str], str | None]

MAX_PARTIAL_DEPTH = 50

_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
})


def escape_html(text: str) -> str:
    return text.translate(_ESCAPES)


class ContextStack:
    """Lookup chain of context frames, innermost last."""

    __slots__ = ("frames", "depth")

    def __init__(self, frames: list[Any], depth: int = 0):
        self.frames = frames
        self.depth = depth

    def push(self, value: Any) -> "ContextStack":
        return ContextStack([*self.frames, value], self.depth)

    def lookup(self, name: str) -> Any:
        if name == ".":
            return self.frames[-1]
        head, *rest = name.split(".")
        for frame in reversed(self.frames):
            found, value = lookup_member(frame, head)
            if not found:
                continue
            for part in rest:
                found, value = lookup_member(value, part)
                if not found:
                    return None
            return value
        return None


class MustacheEngine:
    """Parses (with memoisation) and expands mustache templates."""

    def __init__(self) -> None:
        self._parsed: dict[str, Template] = {}

    def parse(self, source: str, name: str | None = None) -> Template:
        template = self._parsed.get(source)
        if template is None:
            template = parse(source, name=name)
            self._parsed[source] = template
        return template

    def render(
        self,
        source: str,
        context: Any,
        partials: PartialLoader | None = None,
        name: str | None = None,
    ) -> str:
        template = self.parse(source, name=name)
        return self._render_nodes(template.children, ContextStack([context]), partials)

    def _render_source(self, source: str, stack: ContextStack, partials: PartialLoader | None) -> str:
        return self._render_nodes(self.parse(source).children, stack, partials)

    def _render_nodes(self, nodes: tuple[Node, ...], stack: ContextStack, partials: PartialLoader | None) -> str:
        out: list[str] = []
        for node in nodes:
            match node:
                case Text(value=value):
                    out.append(value)
                case Variable():
                    out.append(self._render_variable(node, stack))
                case Section(inverted=True):
                    if not is_truthy(stack.lookup(node.name)):
                        out.append(self._render_nodes(node.children, stack, partials))
                case Section():
                    out.append(self._render_section(node, stack, partials))
                case Partial():
                    out.append(self._render_partial(node, stack, partials))
        return "".join(out)

    def _render_variable(self, node: Variable, stack: ContextStack) -> str:
        value = stack.lookup(node.name)
        if kind_of(value) is ValueKind.LAMBDA:
            value = "" if isinstance(value, SectionLambda) else value()
        text = to_text(value)
        return escape_html(text) if node.escape else text

    def _render_section(self, node: Section, stack: ContextStack, partials: PartialLoader | None) -> str:
        value = stack.lookup(node.name)
        match kind_of(value):
            case ValueKind.LAMBDA:
                result = value(node.raw, lambda text: self._render_source(text, stack, partials))
                return "" if result is None else to_text(result)
            case ValueKind.SEQUENCE:
                return "".join(
                    self._render_nodes(node.children, stack.push(item), partials) for item in value
                )
            case ValueKind.NULL:
                return ""
            case ValueKind.BOOL:
                return self._render_nodes(node.children, stack, partials) if value else ""
            case _:
                if not is_truthy(value):
                    return ""
                return self._render_nodes(node.children, stack.push(value), partials)

    def _render_partial(self, node: Partial, stack: ContextStack, partials: PartialLoader | None) -> str:
        source = partials(node.name) if partials else None
        if not source:
            return ""
        if stack.depth >= MAX_PARTIAL_DEPTH:
            raise MoodleKitError(
                f"Partial '{node.name}' nested deeper than {MAX_PARTIAL_DEPTH}",
                code="PARTIAL_DEPTH_EXCEEDED",
                category=ErrorCategory.RENDER,
            )
        if node.indent:
            source = "".join(
                node.indent + line if line.strip() else line for line in source.splitlines(keepends=True)
            )
        nested = ContextStack(stack.frames, stack.depth + 1)
        return self._render_nodes(self.parse(source, name=node.name).children, nested, partials)
