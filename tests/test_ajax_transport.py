import json

import httpx
import pytest

from moodlekit.ajax.transport import HttpBatchTransport
from moodlekit.config.schema import Config
from moodlekit.utils.exceptions import TransportError


def _config(**site) -> Config:
    cfg = Config()
    cfg.site.wwwroot = "https://moodle.example.org/"
    cfg.site.sesskey = "abc123"
    for key, value in site.items():
        setattr(cfg.site, key, value)
    return cfg


@pytest.mark.asyncio
async def test_post_sends_batch_with_sesskey_and_info() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"error": False, "data": "ok"}])

    transport = HttpBatchTransport(_config(), transport=httpx.MockTransport(handler))
    payload = [{"index": 0, "methodname": "core_session_touch", "args": {}}]

    body = await transport.post(payload, info="core_session_touch")

    assert body == [{"error": False, "data": "ok"}]
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/lib/ajax/service.php"
    assert request.url.params["sesskey"] == "abc123"
    assert request.url.params["info"] == "core_session_touch"
    assert json.loads(request.content) == payload


@pytest.mark.asyncio
async def test_post_attaches_session_cookie() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    cfg = _config()
    cfg.ajax.session_cookie = "s3ss10n"
    transport = HttpBatchTransport(cfg, transport=httpx.MockTransport(handler))

    await transport.post([], info="x")

    assert "MoodleSession=s3ss10n" in seen[0].headers["cookie"]


@pytest.mark.asyncio
async def test_nologin_endpoint_omits_sesskey() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    transport = HttpBatchTransport(_config(), transport=httpx.MockTransport(handler))

    await transport.post([], info="core_output_load_template", login_required=False)

    assert seen[0].url.path == "/lib/ajax/service-nologin.php"
    assert "sesskey" not in seen[0].url.params


@pytest.mark.asyncio
async def test_http_error_status_is_transport_error() -> None:
    transport = HttpBatchTransport(
        _config(),
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="maintenance")),
    )

    with pytest.raises(TransportError) as excinfo:
        await transport.post([], info="x")

    assert excinfo.value.status_code == 503
    assert excinfo.value.retryable is True
    assert "maintenance" in excinfo.value.message


@pytest.mark.asyncio
async def test_non_json_body_is_transport_error() -> None:
    transport = HttpBatchTransport(
        _config(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>login</html>")),
    )

    with pytest.raises(TransportError) as excinfo:
        await transport.post([], info="x")

    assert "non-json" in excinfo.value.message
    assert excinfo.value.retryable is False


@pytest.mark.asyncio
async def test_top_level_error_object_rejects_batch() -> None:
    body = {"error": "Your session has most likely timed out.", "errorcode": "invalidsesskey"}
    transport = HttpBatchTransport(
        _config(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
    )

    with pytest.raises(TransportError) as excinfo:
        await transport.post([], info="x")

    assert "invalidsesskey" in excinfo.value.message


@pytest.mark.asyncio
async def test_network_error_is_retryable_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = HttpBatchTransport(_config(), transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError) as excinfo:
        await transport.post([], info="x")

    assert excinfo.value.retryable is True
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
