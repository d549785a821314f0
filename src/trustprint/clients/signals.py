"""httpx integration for Python clients of fingerprinted endpoints.

Mirrors the browser collector: every outgoing request gets the encoded
signal bundles in the signal header and, when configured, a base64 client
identifier.

Usage:
    registry = build_collector_registry(StaticDeviceProbe(snapshot))
    async with create_signals_client(registry, "https://auth.example") as client:
        await client.post("/sign-in/email", json=credentials)
"""

import base64
import logging
from collections.abc import Iterable

import httpx

from trustprint.api.modules.fingerprint.services.collectors import CollectorRegistry
from trustprint.api.modules.fingerprint.services.transport import encode

logger = logging.getLogger(__name__)

DEFAULT_SIGNAL_HEADER = "X-Data"
DEFAULT_CLIENT_ID_HEADER = "X-Sc-Ua-Rd"


async def get_client_details_headers(
    registry: CollectorRegistry,
    signal_header: str = DEFAULT_SIGNAL_HEADER,
    client_id_header: str = DEFAULT_CLIENT_ID_HEADER,
    client_id: str | None = None,
) -> dict[str, str]:
    bundles = await registry.collect()
    headers = {signal_header: encode(bundles)}
    if client_id:
        headers[client_id_header] = base64.b64encode(client_id.encode("utf-8")).decode(
            "ascii"
        )
    return headers


class SignalHeaderHook:
    """Async httpx ``request`` event hook attaching fingerprint headers.

    :param paths: restrict the hook to these URL paths; ``None`` means all.
    """

    def __init__(
        self,
        registry: CollectorRegistry,
        signal_header: str = DEFAULT_SIGNAL_HEADER,
        client_id_header: str = DEFAULT_CLIENT_ID_HEADER,
        client_id: str | None = None,
        paths: Iterable[str] | None = None,
    ):
        self._registry = registry
        self._signal_header = signal_header
        self._client_id_header = client_id_header
        self._client_id = client_id
        self._paths = frozenset(paths) if paths is not None else None

    def set_client_id(self, client_id: str | None) -> None:
        self._client_id = client_id or None

    async def __call__(self, request: httpx.Request) -> None:
        if self._paths is not None and request.url.path not in self._paths:
            return

        headers = await get_client_details_headers(
            self._registry,
            signal_header=self._signal_header,
            client_id_header=self._client_id_header,
            client_id=self._client_id,
        )
        request.headers.update(headers)
        logger.debug(
            "Fingerprint headers attached",
            extra={"path": request.url.path, "headers": sorted(headers)},
        )


def create_signals_client(
    registry: CollectorRegistry,
    base_url: str = "",
    client_id: str | None = None,
    paths: Iterable[str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    hook = SignalHeaderHook(registry, client_id=client_id, paths=paths)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(30.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        follow_redirects=True,
        event_hooks={"request": [hook]},
        transport=transport,
    )


__all__ = (
    "SignalHeaderHook",
    "create_signals_client",
    "get_client_details_headers",
)
