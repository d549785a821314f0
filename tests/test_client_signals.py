import base64

import httpx
import pytest

from trustprint.api.modules.fingerprint.services.collectors import (
    StaticDeviceProbe,
    build_collector_registry,
)
from trustprint.api.modules.fingerprint.services.transport import decode
from trustprint.clients.signals import (
    SignalHeaderHook,
    create_signals_client,
    get_client_details_headers,
)

DEVICE = {
    "screen": {
        "width": 1920,
        "height": 1080,
        "availWidth": 1920,
        "availHeight": 1040,
        "devicePixelRatio": 1,
    },
    "webgl": {"vendor": "Intel Inc.", "renderer": "Intel(R) UHD Graphics 620"},
}


@pytest.fixture
def registry():
    return build_collector_registry(StaticDeviceProbe(DEVICE))


@pytest.mark.asyncio
async def test_details_headers_carry_encoded_bundles_and_client_id(registry):
    headers = await get_client_details_headers(registry, client_id="device-42")

    bundles = decode(headers["X-Data"])
    assert [bundle.module_id for bundle in bundles] == ["screen", "webgl"]
    assert base64.b64decode(headers["X-Sc-Ua-Rd"]).decode() == "device-42"


@pytest.mark.asyncio
async def test_hook_only_touches_configured_paths(registry):
    captured: dict[str, httpx.Headers] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured[request.url.path] = request.headers
        return httpx.Response(200, json={})

    client = create_signals_client(
        registry,
        base_url="http://auth.test",
        paths=["/sign-in/email"],
        transport=httpx.MockTransport(handler),
    )
    async with client:
        await client.post("/sign-in/email", json={})
        await client.get("/health")

    assert "x-data" in captured["/sign-in/email"]
    assert "x-sc-ua-rd" not in captured["/sign-in/email"]
    assert "x-data" not in captured["/health"]


@pytest.mark.asyncio
async def test_client_id_can_be_set_later(registry):
    hook = SignalHeaderHook(registry, client_id_header="X-Device")
    hook.set_client_id("device-7")
    request = httpx.Request("GET", "http://auth.test/fingerprint/generate")

    await hook(request)

    assert base64.b64decode(request.headers["X-Device"]).decode() == "device-7"


@pytest.mark.asyncio
async def test_hooked_client_is_trusted_by_the_service(registry, app):
    client = create_signals_client(
        registry,
        base_url="http://testserver",
        transport=httpx.ASGITransport(app=app),
    )
    async with client:
        response = await client.get("/fingerprint/generate")

    body = response.json()
    assert body["trust_score"] == 1.0
    assert body["fingerprint_id"] is not None
