"""Tagged view over context values.

Template contexts are arbitrary nested Python data. The engine never relies on
implicit coercion: every value is classified into a ValueKind first and the
truthiness / stringification rules below are applied per kind. The rules match
mustache.js so templates render the same here as in the browser.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from numbers import Number
from typing import Any

RenderFn = Callable[[str], str]


class ValueKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    LAMBDA = "lambda"
    OBJECT = "object"


class SectionLambda:
    """A callable that only makes sense in section position: fn(raw_text, render)."""

    __slots__ = ("fn", "name")

    def __init__(self, fn: Callable[[str, RenderFn], str], name: str = ""):
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "lambda")

    def __call__(self, text: str, render: RenderFn) -> str:
        return self.fn(text, render)

    def __repr__(self) -> str:
        return f"SectionLambda({self.name})"


def kind_of(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, Number):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return ValueKind.SEQUENCE
    if isinstance(value, SectionLambda) or callable(value):
        return ValueKind.LAMBDA
    return ValueKind.OBJECT


def is_truthy(value: Any) -> bool:
    match kind_of(value):
        case ValueKind.NULL:
            return False
        case ValueKind.BOOL:
            return value
        case ValueKind.NUMBER:
            return value != 0 and not (isinstance(value, float) and math.isnan(value))
        case ValueKind.STRING | ValueKind.SEQUENCE:
            return len(value) > 0
        case _:
            return True


def to_text(value: Any) -> str:
    match kind_of(value):
        case ValueKind.NULL:
            return ""
        case ValueKind.BOOL:
            return "true" if value else "false"
        case ValueKind.NUMBER:
            if isinstance(value, float) and value.is_integer():
                return str(int(value))
            return str(value)
        case ValueKind.STRING:
            return value
        case ValueKind.SEQUENCE:
            return ",".join(to_text(item) for item in value)
        case _:
            return str(value)


def lookup_member(container: Any, key: str) -> tuple[bool, Any]:
    """Return (found, value) for one dotted-name segment."""
    match kind_of(container):
        case ValueKind.MAPPING:
            if key in container:
                return True, container[key]
            return False, None
        case ValueKind.SEQUENCE:
            if key.isdigit() and int(key) < len(container):
                return True, container[int(key)]
            return False, None
        case ValueKind.OBJECT | ValueKind.LAMBDA:
            if not key.startswith("_") and hasattr(container, key):
                return True, getattr(container, key)
            return False, None
        case _:
            return False, None
