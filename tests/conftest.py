from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from dishka import AsyncContainer
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from trustprint.api.modules.fingerprint.services.core import SignalBundle
from trustprint.api.modules.fingerprint.services.reconciliation import (
    InMemoryFingerprintStore,
)
from trustprint.api.modules.fingerprint.services.transport import encode
from trustprint.application import create_app
from trustprint.ioc import InMemoryStoreProvider, get_async_container
from trustprint.settings import Config, FingerprintConfig, PostgresConfig

HONEST_SCREEN = {
    "width": 1920,
    "height": 1080,
    "availWidth": 1920,
    "availHeight": 1040,
    "devicePixelRatio": 1.0,
}
HONEST_WEBGL = {
    "vendor": "Google Inc. (NVIDIA)",
    "renderer": "ANGLE (NVIDIA, NVIDIA GeForce RTX 3080 Direct3D11 vs_5_0 ps_5_0, D3D11)",
}
BROWSER_HEADERS = {
    "user-agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0",
    "sec-ch-ua-platform": '"Linux"',
}


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class HeaderSessionMiddleware(BaseHTTPMiddleware):
    """Stand-in for the host auth layer: X-Test-User becomes the session user."""

    async def dispatch(self, request: Request, call_next):  # noqa: ANN001
        user_id = request.headers.get("X-Test-User")
        if user_id:
            request.state.user_id = user_id
        return await call_next(request)


@pytest.fixture
def honest_bundles() -> list[SignalBundle]:
    return [
        SignalBundle(module_id="screen", fields=dict(HONEST_SCREEN)),
        SignalBundle(module_id="webgl", fields=dict(HONEST_WEBGL)),
    ]


@pytest.fixture
def signal_headers(honest_bundles: list[SignalBundle]) -> dict[str, str]:
    return {**BROWSER_HEADERS, "X-Data": encode(honest_bundles)}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> InMemoryFingerprintStore:
    return InMemoryFingerprintStore()


@pytest.fixture
def fingerprint_config() -> FingerprintConfig:
    return FingerprintConfig()


@pytest.fixture
def config(fingerprint_config: FingerprintConfig) -> Config:
    return Config(
        env="local",
        postgres=PostgresConfig(user="test", password="test", host="localhost", db="test"),
        fingerprint=fingerprint_config,
    )


@pytest_asyncio.fixture
async def container(config: Config) -> AsyncIterator[AsyncContainer]:
    container = get_async_container(config, store_provider=InMemoryStoreProvider())
    yield container
    await container.close()


@pytest.fixture
def app(config: Config, container: AsyncContainer) -> FastAPI:
    app = create_app(config, container)

    @app.post("/sign-in/email")
    async def sign_in(request: Request) -> dict[str, bool]:
        payload = await request.json()
        if payload.get("password") != "correct":
            return {"ok": False}
        request.state.user_id = payload["user_id"]
        return {"ok": True}

    app.add_middleware(HeaderSessionMiddleware)
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
