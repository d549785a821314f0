from collections.abc import Callable, Iterable, Mapping

from trustprint.api.modules.fingerprint.exceptions import UnknownModuleError
from trustprint.api.modules.fingerprint.services.collectors.base import (
    CollectorRegistry,
    DeviceProbe,
    SignalCollector,
    StaticDeviceProbe,
)
from trustprint.api.modules.fingerprint.services.collectors.screen import (
    ScreenCollector,
)
from trustprint.api.modules.fingerprint.services.collectors.webgl import (
    WebGLCollector,
)

BUILTIN_COLLECTORS: Mapping[str, Callable[[DeviceProbe], SignalCollector]] = {
    ScreenCollector.id: ScreenCollector,
    WebGLCollector.id: WebGLCollector,
}
DEFAULT_COLLECTORS = (ScreenCollector.id, WebGLCollector.id)


def build_collector_registry(
    probe: DeviceProbe,
    names: Iterable[str] = DEFAULT_COLLECTORS,
) -> CollectorRegistry:
    collectors: list[SignalCollector] = []
    for name in names:
        factory = BUILTIN_COLLECTORS.get(name)
        if factory is None:
            raise UnknownModuleError("collector", name, list(BUILTIN_COLLECTORS))
        collectors.append(factory(probe))
    return CollectorRegistry(collectors)


__all__ = (
    "BUILTIN_COLLECTORS",
    "DEFAULT_COLLECTORS",
    "CollectorRegistry",
    "DeviceProbe",
    "ScreenCollector",
    "SignalCollector",
    "StaticDeviceProbe",
    "WebGLCollector",
    "build_collector_registry",
)
