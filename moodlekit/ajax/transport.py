"""HTTP transport for the batched AJAX endpoint."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from moodlekit.config.schema import Config
from moodlekit.utils.exceptions import TransportError, sanitize_error_message


class HttpBatchTransport:
    """POSTs one serialized batch and returns the decoded response array."""

    def __init__(self, config: Config, *, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    def _endpoint(self, login_required: bool) -> str:
        base = self.config.site.wwwroot.rstrip("/")
        path = self.config.ajax.service_path if login_required else self.config.ajax.nologin_service_path
        return f"{base}{path}"

    def _params(self, info: str, login_required: bool) -> dict[str, str]:
        params = {"info": info}
        if login_required and self.config.site.sesskey:
            params["sesskey"] = self.config.site.sesskey
        return params

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        ajax = self.config.ajax
        if ajax.session_cookie:
            headers["Cookie"] = f"{ajax.session_cookie_name}={ajax.session_cookie}"
        return headers

    async def post(self, payload: list[dict[str, Any]], *, info: str, login_required: bool = True) -> list[Any]:
        url = self._endpoint(login_required)
        try:
            async with httpx.AsyncClient(
                timeout=self.config.ajax.timeout_seconds,
                transport=self._transport,
                headers=self._headers(),
            ) as client:
                resp = await client.post(url, params=self._params(info, login_required), json=payload)
        except httpx.TimeoutException as exc:
            raise TransportError(f"ajax timeout: {info}", retryable=True) from exc
        except httpx.RequestError as exc:
            raise TransportError(
                f"ajax network error: {info}: {sanitize_error_message(str(exc))}",
                retryable=True,
            ) from exc

        status_code = int(resp.status_code or 0)
        if status_code >= 400:
            raise TransportError(
                f"ajax http error {status_code}: {_extract_error_message(resp)}",
                status_code=status_code,
                retryable=status_code >= 500 or status_code in {408, 429},
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise TransportError(
                f"ajax bad response: non-json body for {info}",
                status_code=status_code,
            ) from exc

        if isinstance(body, dict):
            # Whole-request failures (bad sesskey, expired session) come back as one object.
            message = str(body.get("error") or body.get("message") or "request failed")
            errorcode = body.get("errorcode")
            logger.warning(f"ajax request rejected: {errorcode or 'error'}: {sanitize_error_message(message)}")
            raise TransportError(
                f"ajax request rejected: {message}" + (f" ({errorcode})" if errorcode else ""),
                status_code=status_code,
            )
        if not isinstance(body, list):
            raise TransportError(f"ajax bad response: expected array for {info}", status_code=status_code)
        return body


def _extract_error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return sanitize_error_message(val.strip())
    text = (resp.text or "").strip()
    if text:
        return sanitize_error_message(text[:200])
    return "request failed"
