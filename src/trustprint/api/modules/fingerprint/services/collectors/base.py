import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Protocol

from trustprint.api.modules.fingerprint.services.core.types import (
    RESERVED_FIELD,
    SignalBundle,
    SignalFields,
)

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


class DeviceProbe(Protocol):
    """Source of local device properties, keyed by capability name.

    Returns None when the capability is unsupported on this device.
    """

    def read(self, capability: str) -> Mapping[str, object] | None: ...


class StaticDeviceProbe:
    def __init__(self, snapshot: Mapping[str, Mapping[str, object]] | None = None):
        self._snapshot = dict(snapshot or {})

    def read(self, capability: str) -> Mapping[str, object] | None:
        return self._snapshot.get(capability)


class SignalCollector(ABC):
    id: str

    async def init(self) -> None:
        return None

    @abstractmethod
    async def get_info(self) -> SignalFields:
        """Return this module's fields, or {} when the capability is unsupported."""


def sanitize_fields(values: Mapping[str, object]) -> SignalFields:
    return {
        key: value
        for key, value in values.items()
        if key != RESERVED_FIELD and isinstance(value, _SCALAR_TYPES)
    }


class CollectorRegistry:
    """Runs independent collectors and assembles one bundle per module."""

    def __init__(self, collectors: Iterable[SignalCollector] = ()):
        self._collectors: tuple[SignalCollector, ...] = tuple(collectors)
        ids = [collector.id for collector in self._collectors]
        duplicates = sorted({item for item in ids if ids.count(item) > 1})
        if duplicates:
            raise ValueError(f"Duplicate collector ids: {', '.join(duplicates)}")
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def collectors(self) -> tuple[SignalCollector, ...]:
        return self._collectors

    async def init(self) -> None:
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            results = await asyncio.gather(
                *(collector.init() for collector in self._collectors),
                return_exceptions=True,
            )
            for collector, result in zip(self._collectors, results, strict=True):
                if isinstance(result, Exception):
                    logger.warning(
                        "Collector init failed",
                        extra={"collector_id": collector.id},
                        exc_info=result,
                    )
            self._initialized = True

    async def _collect_one(self, collector: SignalCollector) -> SignalBundle:
        try:
            info = await collector.get_info()
        except Exception:  # noqa: BLE001
            logger.warning(
                "Collector failed, sending empty bundle",
                extra={"collector_id": collector.id},
                exc_info=True,
            )
            info = {}
        return SignalBundle(module_id=collector.id, fields=sanitize_fields(info or {}))

    async def collect(self) -> list[SignalBundle]:
        await self.init()
        return list(
            await asyncio.gather(*(self._collect_one(item) for item in self._collectors))
        )


__all__ = (
    "CollectorRegistry",
    "DeviceProbe",
    "SignalCollector",
    "StaticDeviceProbe",
    "sanitize_fields",
)
