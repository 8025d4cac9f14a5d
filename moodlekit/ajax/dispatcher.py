"""
Batched remote call dispatcher.

Several logical calls travel in one POST to lib/ajax/service.php and come back as
one array. Each caller gets its own handle (an asyncio.Future) immediately; the
handles are settled by position once the round trip finishes.

Settlement rules:
- success responses resolve their handle with the response data;
- the first error response rejects its handle and every later handle in the
  batch, whatever their own responses said;
- a response array shorter than the batch rejects from the first missing
  position onward with ProtocolError;
- a transport failure rejects every handle;
- earlier resolved handles are never touched again.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, Sequence

from loguru import logger

from moodlekit.ajax.protocol import RemoteCall, RemoteException, WireResponse, build_payload, coerce_call
from moodlekit.utils.exceptions import (
    MoodleKitError,
    ProtocolError,
    TransportError,
    sanitize_error_message,
)


class BatchTransport(Protocol):
    async def post(self, payload: list[dict[str, Any]], *, info: str, login_required: bool = True) -> list[Any]:
        ...


def _resolve(handle: asyncio.Future, value: Any) -> None:
    if not handle.done():
        handle.set_result(value)


def _reject(handle: asyncio.Future, exc: BaseException) -> None:
    if not handle.done():
        handle.set_exception(exc)


def settle_batch(
    handles: Sequence[asyncio.Future],
    responses: Sequence[Any],
    calls: Sequence[RemoteCall] | None = None,
) -> None:
    """Settle every handle of a batch from its positional responses."""
    failure: BaseException | None = None
    position = 0
    for position, handle in enumerate(handles):
        if position >= len(responses):
            logger.warning(f"ajax batch short: {len(responses)} responses for {len(handles)} calls")
            failure = ProtocolError("missing response", index=position)
            break
        response = WireResponse.parse(responses[position])
        if response.error:
            methodname = calls[position].methodname if calls else None
            failure = (response.exception or RemoteException()).to_error(methodname)
            logger.warning(f"ajax call {methodname or position} failed: {sanitize_error_message(str(failure))}")
            break
        _resolve(handle, response.data)

    if failure is not None:
        for handle in handles[position:]:
            _reject(handle, failure)


def reject_batch(handles: Sequence[asyncio.Future], exc: BaseException) -> None:
    for handle in handles:
        _reject(handle, exc)


class AjaxDispatcher:
    """Coalesces remote calls into single batched requests."""

    def __init__(self, transport: BatchTransport):
        self.transport = transport
        self._inflight: set[asyncio.Task] = set()

    async def call(
        self,
        requests: Sequence[RemoteCall | dict[str, Any]],
        async_: bool = True,
        *,
        login_required: bool = True,
    ) -> list[asyncio.Future]:
        """
        Submit an ordered batch and return one handle per request, in order.

        With async_ (the default) the round trip runs in the background and this
        returns without suspending. With async_=False the round trip completes
        first and the returned handles are already settled.
        """
        calls = [coerce_call(request) for request in requests]
        loop = asyncio.get_running_loop()
        handles: list[asyncio.Future] = [loop.create_future() for _ in calls]
        if not calls:
            return handles

        round_trip = self._round_trip(calls, handles, login_required)
        if async_:
            task = asyncio.create_task(round_trip)
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
        else:
            await round_trip
        return handles

    async def call_one(self, methodname: str, args: dict[str, Any] | None = None, *, login_required: bool = True) -> Any:
        """Submit a batch of one and wait for its result."""
        handles = await self.call(
            [RemoteCall(methodname=methodname, args=args or {})],
            login_required=login_required,
        )
        return await handles[0]

    async def _round_trip(
        self,
        calls: list[RemoteCall],
        handles: list[asyncio.Future],
        login_required: bool,
    ) -> None:
        info = ",".join(call.methodname for call in calls)
        logger.debug(f"ajax batch of {len(calls)}: {info}")
        try:
            responses = await self.transport.post(build_payload(calls), info=info, login_required=login_required)
        except asyncio.CancelledError:
            reject_batch(handles, TransportError(f"ajax batch cancelled: {info}"))
            raise
        except MoodleKitError as exc:
            logger.error(f"ajax batch failed: {sanitize_error_message(str(exc))}")
            reject_batch(handles, exc)
            return
        except Exception as exc:
            logger.error(f"ajax batch failed: {sanitize_error_message(str(exc))}")
            error = TransportError(f"ajax transport failure: {exc}")
            error.__cause__ = exc
            reject_batch(handles, error)
            return
        try:
            settle_batch(handles, responses, calls)
        except Exception as exc:
            logger.error(f"ajax batch settlement failed: {sanitize_error_message(str(exc))}")
            error = ProtocolError(f"unreadable response: {exc}")
            error.__cause__ = exc
            reject_batch(handles, error)

    async def drain(self) -> None:
        """Wait for background round trips started by call()."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
