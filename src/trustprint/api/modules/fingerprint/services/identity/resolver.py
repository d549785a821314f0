import base64
import binascii
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass

from trustprint.api.modules.fingerprint.services.core import (
    EMPTY_EVALUATION,
    CheckType,
    SignalEvaluation,
    hash_material,
)
from trustprint.api.modules.fingerprint.services.network import normalize_headers
from trustprint.api.modules.fingerprint.services.validators import ValidatorRegistry

logger = logging.getLogger(__name__)

DEFAULT_SERVER_ID_HEADERS = (
    "user-agent",
    "cf-ipcountry",
    "sec-ch-ua",
    "sec-ch-ua-platform",
    "sec-ch-ua-mobile",
)
# At least one of these must be present; client hints alone are near-constant.
DEFAULT_REQUIRED_ID_HEADERS = ("user-agent", "cf-ipcountry")
DEFAULT_CLIENT_ID_HEADER = "x-sc-ua-rd"
MAX_FINGERPRINT_ID_LENGTH = 128


@dataclass(frozen=True, slots=True)
class FingerprintIdRequest:
    headers: Mapping[str, str]
    evaluation: SignalEvaluation = EMPTY_EVALUATION


FingerprintIdGetter = Callable[[FingerprintIdRequest], Awaitable[str | None]]


def clean_fingerprint_id(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not candidate or len(candidate) > MAX_FINGERPRINT_ID_LENGTH:
        return None
    if not candidate.isprintable():
        return None
    return candidate


class IdentityStrategy(ABC):
    name: str

    @abstractmethod
    async def resolve(self, request: FingerprintIdRequest) -> str | None: ...


class ServerDerivedStrategy(IdentityStrategy):
    """Content-addressed id over a fixed, ordered list of request headers."""

    name = "server"

    def __init__(
        self,
        header_names: Sequence[str] = DEFAULT_SERVER_ID_HEADERS,
        required_headers: Sequence[str] = DEFAULT_REQUIRED_ID_HEADERS,
    ):
        self._header_names = tuple(name.lower() for name in header_names)
        self._required_headers = tuple(name.lower() for name in required_headers)

    def material(self, headers: Mapping[str, str]) -> list[str] | None:
        required = self._required_headers or self._header_names
        if not any(headers.get(name, "").strip() for name in required):
            return None
        return [headers.get(name, "").strip() for name in self._header_names]

    async def resolve(self, request: FingerprintIdRequest) -> str | None:
        material = self.material(request.headers)
        if material is None:
            return None
        return hash_material(material)


class ClientAssertedStrategy(IdentityStrategy):
    """Id supplied by the client, base64 encoded.

    The server trusts the value without re-deriving it, so two devices that
    send the same value collapse into one record.
    """

    name = "client"

    def __init__(self, header_name: str = DEFAULT_CLIENT_ID_HEADER):
        self._header_name = header_name.lower()

    async def resolve(self, request: FingerprintIdRequest) -> str | None:
        encoded = request.headers.get(self._header_name, "").strip()
        if not encoded:
            return None
        try:
            decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, ValueError):
            logger.debug("Client fingerprint id is not valid base64 text")
            return None
        return clean_fingerprint_id(decoded)


class CustomStrategy(IdentityStrategy):
    name = "custom"

    def __init__(self, getter: FingerprintIdGetter):
        self._getter = getter

    async def resolve(self, request: FingerprintIdRequest) -> str | None:
        try:
            value = await self._getter(request)
        except Exception:  # noqa: BLE001
            logger.exception("Custom fingerprint id getter failed")
            return None
        return clean_fingerprint_id(value)


class CombinedSignalsGetter:
    """Default getter for ``check_type="both"``.

    Hashes the server header material together with the formatted client
    signals each configured validator understands.
    """

    def __init__(self, server: ServerDerivedStrategy, validators: ValidatorRegistry):
        self._server = server
        self._validators = validators

    async def __call__(self, request: FingerprintIdRequest) -> str | None:
        material = self._server.material(request.headers) or []
        signals = self._validators.format_info(request.evaluation.bundles)
        if not material and not signals:
            return None
        return hash_material([material, signals])


class IdentityResolver:
    def __init__(self, strategy: IdentityStrategy):
        self._strategy = strategy

    @property
    def strategy(self) -> IdentityStrategy:
        return self._strategy

    async def resolve(
        self,
        headers: Mapping[str, str] | None,
        evaluation: SignalEvaluation = EMPTY_EVALUATION,
    ) -> str | None:
        request = FingerprintIdRequest(
            headers=normalize_headers(headers),
            evaluation=evaluation,
        )
        fingerprint_id = await self._strategy.resolve(request)
        if fingerprint_id is None:
            logger.debug(
                "No fingerprint id resolved",
                extra={"strategy": self._strategy.name},
            )
        return fingerprint_id


def build_identity_resolver(
    check_type: CheckType | str,
    validators: ValidatorRegistry,
    server_headers: Sequence[str] = DEFAULT_SERVER_ID_HEADERS,
    client_id_header: str = DEFAULT_CLIENT_ID_HEADER,
    getter: FingerprintIdGetter | None = None,
    required_headers: Sequence[str] = DEFAULT_REQUIRED_ID_HEADERS,
) -> IdentityResolver:
    """Select the single active strategy for a configuration.

    A caller-supplied getter always wins; otherwise ``check_type`` decides.
    """
    if getter is not None:
        return IdentityResolver(CustomStrategy(getter))

    mode = CheckType(check_type)
    server = ServerDerivedStrategy(server_headers, required_headers)
    if mode is CheckType.CLIENT:
        return IdentityResolver(ClientAssertedStrategy(client_id_header))
    if mode is CheckType.BOTH:
        return IdentityResolver(CustomStrategy(CombinedSignalsGetter(server, validators)))
    return IdentityResolver(server)


__all__ = (
    "DEFAULT_CLIENT_ID_HEADER",
    "DEFAULT_REQUIRED_ID_HEADERS",
    "DEFAULT_SERVER_ID_HEADERS",
    "ClientAssertedStrategy",
    "CombinedSignalsGetter",
    "CustomStrategy",
    "FingerprintIdGetter",
    "FingerprintIdRequest",
    "IdentityResolver",
    "IdentityStrategy",
    "ServerDerivedStrategy",
    "build_identity_resolver",
    "clean_fingerprint_id",
)
