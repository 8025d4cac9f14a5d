"""Per-render state, owned by exactly one render() call.

Strings and script blocks discovered while expanding a template belong to the
pass that found them; nothing here is shared between concurrent renders except
the uniqid counter, which only ever increases.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass, field
from typing import Sequence

from moodlekit.strings.resolver import StringRequest

_uniqid_counter = itertools.count(1)

_PLACEHOLDER_RE = re.compile(r"\{\{_s(\d+)\}\}")


def next_uniqid() -> int:
    return next(_uniqid_counter)


def string_placeholder(index: int) -> str:
    return "{{_s" + str(index) + "}}"


def substitute_strings(text: str, strings: Sequence[str]) -> str:
    """Replace each {{_sN}} once, in a single pass over text.

    Resolved strings are inserted verbatim and are never scanned again, so a
    string that itself contains a placeholder-looking sequence stays literal.
    """
    if not strings:
        return text
    used: set[int] = set()

    def _replace(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(strings) or index in used:
            return match.group(0)
        used.add(index)
        return strings[index]

    return _PLACEHOLDER_RE.sub(_replace, text)


@dataclass
class RenderPass:
    uniqid: int = field(default_factory=next_uniqid)
    required_strings: list[StringRequest] = field(default_factory=list)
    required_js: list[str] = field(default_factory=list)

    def require_string(self, request: StringRequest) -> str:
        index = len(self.required_strings)
        self.required_strings.append(request)
        return string_placeholder(index)

    def require_js(self, block: str) -> None:
        self.required_js.append(block)

    def script_block(self, strings: Sequence[str]) -> str:
        js = ";\n".join(self.required_js)
        return substitute_strings(js, strings)
