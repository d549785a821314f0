from trustprint.api.modules.fingerprint.services.collectors.base import (
    DeviceProbe,
    SignalCollector,
)
from trustprint.api.modules.fingerprint.services.core import SignalFields, as_number

SCREEN_PROPERTIES = ("width", "height", "availWidth", "availHeight", "devicePixelRatio")


class ScreenCollector(SignalCollector):
    id = "screen"

    def __init__(self, probe: DeviceProbe):
        self._probe = probe

    async def get_info(self) -> SignalFields:
        screen = self._probe.read("screen")
        if not screen:
            return {}

        info: SignalFields = {}
        for name in SCREEN_PROPERTIES:
            value = as_number(screen.get(name))
            if value is None:
                continue
            if name != "devicePixelRatio" and value.is_integer():
                info[name] = int(value)
            else:
                info[name] = value
        return info


__all__ = ("SCREEN_PROPERTIES", "ScreenCollector")
