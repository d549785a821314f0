import logging
from collections.abc import Mapping

from trustprint.api.modules.fingerprint.services.collectors.base import (
    DeviceProbe,
    SignalCollector,
)
from trustprint.api.modules.fingerprint.services.core import SignalFields, as_text

logger = logging.getLogger(__name__)


class WebGLCollector(SignalCollector):
    id = "webgl"

    def __init__(self, probe: DeviceProbe):
        self._probe = probe
        self._context: Mapping[str, object] | None = None
        self._initialized = False

    async def init(self) -> None:
        if self._initialized:
            return
        self._context = self._probe.read("webgl")
        self._initialized = True
        if self._context is None:
            logger.info("WebGL not supported on this device")

    async def get_info(self) -> SignalFields:
        await self.init()
        if not self._context:
            return {}

        renderer = as_text(self._context.get("renderer"))
        vendor = as_text(self._context.get("vendor"))
        # Without the debug renderer extension neither value is exposed.
        if renderer is None or vendor is None:
            return {}
        return {"renderer": renderer, "vendor": vendor}


__all__ = ("WebGLCollector",)
