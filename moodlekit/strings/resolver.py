"""Localised string lookups through core_get_string."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Sequence

from loguru import logger

from moodlekit.ajax.dispatcher import AjaxDispatcher
from moodlekit.ajax.protocol import RemoteCall

GET_STRING_METHOD = "core_get_string"


@dataclass(frozen=True)
class StringRequest:
    """One string a caller needs: key, component and an optional $a argument."""

    key: str
    component: str = ""
    param: Any = None


def encode_string_params(param: Any) -> list[dict[str, Any]]:
    """Shape a $a argument the way core_get_string expects its stringparams."""
    if param is None or param == "":
        return []
    if isinstance(param, dict):
        return [{"name": str(name), "value": value} for name, value in param.items()]
    return [{"value": param}]


class StringResolver:
    """
    Resolves batches of strings in one dispatcher call, preserving order.

    By default the $a argument stays local and only {stringid, component, lang}
    travels on the wire. With send_params it is forwarded as stringparams.
    """

    def __init__(
        self,
        dispatcher: AjaxDispatcher,
        *,
        lang: str = "en",
        send_params: bool = False,
        cache: bool = True,
    ):
        self.dispatcher = dispatcher
        self.lang = lang
        self.send_params = send_params
        self.cache_enabled = cache
        self._cache: dict[tuple[str, str, str], str] = {}

    def _cache_key(self, request: StringRequest) -> tuple[str, str, str] | None:
        if not self.cache_enabled:
            return None
        if self.send_params and encode_string_params(request.param):
            return None
        return (self.lang, request.component or "core", request.key)

    def _to_call(self, request: StringRequest) -> RemoteCall:
        args: dict[str, Any] = {
            "stringid": request.key,
            "component": request.component or "core",
            "lang": self.lang,
        }
        if self.send_params:
            args["stringparams"] = encode_string_params(request.param)
        return RemoteCall(methodname=GET_STRING_METHOD, args=args)

    async def get_strings(self, requests: Sequence[StringRequest | dict[str, Any]]) -> list[str]:
        wanted = [r if isinstance(r, StringRequest) else StringRequest(**r) for r in requests]
        results: list[str | None] = [None] * len(wanted)
        missing: list[int] = []
        for position, request in enumerate(wanted):
            key = self._cache_key(request)
            if key is not None and key in self._cache:
                results[position] = self._cache[key]
            else:
                missing.append(position)

        if missing:
            logger.debug(f"fetching {len(missing)} of {len(wanted)} strings")
            handles = await self.dispatcher.call([self._to_call(wanted[p]) for p in missing])
            values = await asyncio.gather(*handles, return_exceptions=True)
            for value in values:
                if isinstance(value, BaseException):
                    raise value
            for position, value in zip(missing, values):
                text = "" if value is None else str(value)
                results[position] = text
                key = self._cache_key(wanted[position])
                if key is not None:
                    self._cache.setdefault(key, text)

        return [text or "" for text in results]

    async def get_string(self, key: str, component: str = "", param: Any = None) -> str:
        strings = await self.get_strings([StringRequest(key=key, component=component, param=param)])
        return strings[0]
