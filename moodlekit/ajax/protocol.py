"""Wire envelopes for lib/ajax/service.php."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from moodlekit.utils.exceptions import RemoteCallError


class RemoteCall(BaseModel):
    """One logical call submitted to the dispatcher."""
    methodname: str
    args: dict[str, Any] = Field(default_factory=dict)


class WireRequest(BaseModel):
    """Outbound batch element; index is the position inside the batch."""
    index: int
    methodname: str
    args: dict[str, Any] = Field(default_factory=dict)


class RemoteException(BaseModel):
    """Exception payload attached to a failed response."""
    message: str = "Unknown remote error"
    errorcode: str | None = None
    exception: str | None = None
    debuginfo: str | None = None
    link: str | None = None
    moreinfourl: str | None = None

    def to_error(self, methodname: str | None = None) -> RemoteCallError:
        return RemoteCallError(
            self.message,
            errorcode=self.errorcode,
            exception=self.exception,
            debuginfo=self.debuginfo,
            methodname=methodname,
        )


class WireResponse(BaseModel):
    """Inbound batch element, aligned positionally with the request."""
    error: bool = False
    data: Any = None
    exception: RemoteException | None = None

    @classmethod
    def parse(cls, raw: Any) -> "WireResponse":
        """Accept the loose shapes the endpoint produces.

        Only an explicit error: false counts as success. Anything that cannot be
        read as a response becomes an error element instead of raising.
        """
        if not isinstance(raw, dict):
            return cls(error=True, exception=RemoteException(message=f"malformed response: {raw!r}"))
        try:
            return cls(
                error=raw.get("error") is not False,
                data=raw.get("data"),
                exception=_coerce_exception(raw.get("exception")),
            )
        except ValidationError as exc:
            return cls(error=True, exception=RemoteException(message=f"malformed response: {exc.error_count()} invalid fields"))


def _coerce_exception(exc: Any) -> dict[str, Any] | None:
    if exc is None:
        return None
    if not isinstance(exc, dict):
        return {"message": str(exc)}
    fields = {key: str(value) for key, value in exc.items() if key in RemoteException.model_fields and value is not None}
    fields.setdefault("message", "Unknown remote error")
    return fields


def build_payload(calls: list[RemoteCall]) -> list[dict[str, Any]]:
    """Serialize an ordered batch, stamping each call's position."""
    return [
        WireRequest(index=index, methodname=call.methodname, args=call.args).model_dump()
        for index, call in enumerate(calls)
    ]


def coerce_call(request: RemoteCall | dict[str, Any]) -> RemoteCall:
    if isinstance(request, RemoteCall):
        return request
    return RemoteCall.model_validate(request)
