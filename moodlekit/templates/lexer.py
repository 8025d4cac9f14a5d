"""Mustache tokenizer and parser.

Tags understood:
    {{name}} {{{name}}} {{&name}}   variables (escaped / raw)
    {{#name}} {{^name}} {{/name}}   sections, inverted sections, closers
    {{! comment }}                  comments
    {{> partial}}                   partials
    {{=<% %>=}}                     delimiter changes

Section, closer, comment, partial and delimiter tags that sit alone on a line
("standalone") take their whole line with them, as mustache.js does.
"""

from __future__ import annotations

from dataclasses import dataclass

from moodlekit.templates.nodes import Node, Partial, Section, Template, Text, Variable
from moodlekit.utils.exceptions import TemplateSyntaxError

DEFAULT_TAGS = ("{{", "}}")

_TYPE_CHARS = "#^/!>=&{"
_STANDALONE_KINDS = frozenset("#^/!>=")


@dataclass(frozen=True, slots=True)
class Token:
    kind: str  # "text", "name", "&", "#", "^", "/", ">"
    value: str
    start: int
    end: int
    lineno: int
    indent: str = ""


def _standalone_span(source: str, start: int, end: int) -> tuple[int, int] | None:
    """Return (line_begin, next_pos) when the tag at [start, end) is alone on its line."""
    line_begin = source.rfind("\n", 0, start) + 1
    if source[line_begin:start].strip(" \t"):
        return None
    line_end = source.find("\n", end)
    tail = source[end:] if line_end == -1 else source[end:line_end]
    if tail.rstrip("\r").strip(" \t"):
        return None
    next_pos = len(source) if line_end == -1 else line_end + 1
    return line_begin, next_pos


def tokenize(source: str, tags: tuple[str, str] = DEFAULT_TAGS, name: str | None = None) -> list[Token]:
    tokens: list[Token] = []
    open_tag, close_tag = tags
    pos = 0
    length = len(source)

    while pos < length:
        start = source.find(open_tag, pos)
        if start == -1:
            tokens.append(Token("text", source[pos:], pos, length, source.count("\n", 0, pos) + 1))
            break

        lineno = source.count("\n", 0, start) + 1
        content_start = start + len(open_tag)
        kind = "name"
        if content_start < length and source[content_start] in _TYPE_CHARS:
            kind = source[content_start]
            content_start += 1
        if kind == "{":
            closer = "}" + close_tag
            kind = "&"
        elif kind == "=":
            closer = "=" + close_tag
        else:
            closer = close_tag

        close_pos = source.find(closer, content_start)
        if close_pos == -1:
            raise TemplateSyntaxError(f"Unclosed tag '{open_tag}'", line=lineno, template=name)
        end = close_pos + len(closer)
        value = source[content_start:close_pos].strip()
        if not value and kind != "!":
            raise TemplateSyntaxError("Empty tag", line=lineno, template=name)

        text_end, next_pos, indent = start, end, ""
        if kind in _STANDALONE_KINDS:
            span = _standalone_span(source, start, end)
            if span is not None:
                text_end, next_pos = span
                indent = source[text_end:start]

        if text_end > pos:
            tokens.append(Token("text", source[pos:text_end], pos, text_end, source.count("\n", 0, pos) + 1))

        if kind == "=":
            parts = value.split()
            if len(parts) != 2:
                raise TemplateSyntaxError(f"Invalid delimiters '{value}'", line=lineno, template=name)
            open_tag, close_tag = parts[0], parts[1]
        elif kind != "!":
            tokens.append(Token(kind, value, start, end, lineno, indent))
        pos = next_pos

    return tokens


def parse(source: str, name: str | None = None) -> Template:
    """Build the node tree, checking that sections balance."""
    root: list[Node] = []
    current = root
    stack: list[tuple[Token, list[Node]]] = []

    for token in tokenize(source, name=name):
        match token.kind:
            case "text":
                current.append(Text(token.lineno, token.value))
            case "name":
                current.append(Variable(token.lineno, token.value, escape=True))
            case "&":
                current.append(Variable(token.lineno, token.value, escape=False))
            case ">":
                current.append(Partial(token.lineno, token.value, indent=token.indent))
            case "#" | "^":
                stack.append((token, current))
                current = []
            case "/":
                if not stack:
                    raise TemplateSyntaxError(f"Unopened section '{token.value}'", line=token.lineno, template=name)
                opener, parent = stack.pop()
                if opener.value != token.value:
                    raise TemplateSyntaxError(
                        f"Unclosed section '{opener.value}' (closed by '{token.value}')",
                        line=token.lineno,
                        template=name,
                    )
                parent.append(
                    Section(
                        opener.lineno,
                        opener.value,
                        tuple(current),
                        raw=source[opener.end:token.start],
                        inverted=opener.kind == "^",
                    )
                )
                current = parent

    if stack:
        opener, _ = stack[-1]
        raise TemplateSyntaxError(f"Unclosed section '{opener.value}'", line=opener.lineno, template=name)
    return Template(tuple(root), name=name)
