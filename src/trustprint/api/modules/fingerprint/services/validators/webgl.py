from collections.abc import Mapping

from trustprint.api.modules.fingerprint.services.core import as_text
from trustprint.api.modules.fingerprint.services.validators.base import SignalValidator

# Vendor marker -> renderer substrings, any of which must be present.
# Order matters: "Google Inc. (NVIDIA)" must match the nvidia family first.
VENDOR_FAMILIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("nvidia", ("nvidia",)),
    ("intel", ("intel",)),
    ("amd", ("amd", "radeon")),
    ("ati technologies", ("amd", "radeon", "ati")),
    ("apple", ("apple",)),
    ("qualcomm", ("adreno",)),
    ("arm", ("mali",)),
    ("google inc.", ("angle",)),
)


def match_vendor_family(vendor: str) -> tuple[str, tuple[str, ...]] | None:
    marker = vendor.lower()
    for family, expected in VENDOR_FAMILIES:
        if family in marker:
            return family, expected
    return None


class WebGLValidator(SignalValidator):
    id = "webgl"
    group = "graphics"
    default_weight = 50

    def __init__(self, weight: float | None = None, allow_unknown_vendors: bool = False):
        super().__init__(weight)
        self._allow_unknown_vendors = allow_unknown_vendors

    def is_lying(self, fields: Mapping[str, object]) -> bool:
        renderer = as_text(fields.get("renderer"))
        vendor = as_text(fields.get("vendor"))
        if not renderer or not vendor:
            return True

        matched = match_vendor_family(vendor)
        if matched is None:
            return not self._allow_unknown_vendors

        _, expected = matched
        normalized_renderer = renderer.lower()
        return not any(token in normalized_renderer for token in expected)


__all__ = ("VENDOR_FAMILIES", "WebGLValidator", "match_vendor_family")
