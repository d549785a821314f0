from collections.abc import Mapping

from trustprint.api.modules.fingerprint.services.core import as_number
from trustprint.api.modules.fingerprint.services.validators.base import SignalValidator

SCREEN_FIELDS = ("width", "height", "availWidth", "availHeight", "devicePixelRatio")


class ScreenValidator(SignalValidator):
    id = "screen"
    group = "device"
    default_weight = 40

    def __init__(
        self,
        weight: float | None = None,
        min_dimension: int = 300,
        min_pixel_ratio: float = 0.5,
        max_pixel_ratio: float = 10,
    ):
        super().__init__(weight)
        self._min_dimension = min_dimension
        self._min_pixel_ratio = min_pixel_ratio
        self._max_pixel_ratio = max_pixel_ratio

    def is_lying(self, fields: Mapping[str, object]) -> bool:
        values = {name: as_number(fields.get(name)) for name in SCREEN_FIELDS}
        # Absent, non-numeric and zero values all read as spoofed.
        if any(not value for value in values.values()):
            return True

        width = values["width"]
        height = values["height"]
        avail_width = values["availWidth"]
        avail_height = values["availHeight"]
        pixel_ratio = values["devicePixelRatio"]

        if width < self._min_dimension or height < self._min_dimension:
            return True

        if avail_width > width or avail_height > height:
            return True

        return not self._min_pixel_ratio <= pixel_ratio <= self._max_pixel_ratio


__all__ = ("SCREEN_FIELDS", "ScreenValidator")
