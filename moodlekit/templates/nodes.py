"""Parse tree for mustache templates."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    lineno: int


@dataclass(frozen=True, slots=True)
class Text(Node):
    value: str


@dataclass(frozen=True, slots=True)
class Variable(Node):
    name: str
    escape: bool = True


@dataclass(frozen=True, slots=True)
class Section(Node):
    """{{#name}}...{{/name}} or, when inverted, {{^name}}...{{/name}}.

    raw holds the untouched source between the tags; section lambdas receive it.
    """

    name: str
    children: tuple[Node, ...]
    raw: str
    inverted: bool = False


@dataclass(frozen=True, slots=True)
class Partial(Node):
    name: str
    indent: str = ""


@dataclass(frozen=True, slots=True)
class Template:
    children: tuple[Node, ...]
    name: str | None = None
