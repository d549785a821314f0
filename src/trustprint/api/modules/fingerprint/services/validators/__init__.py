from collections.abc import Iterable, Mapping

from trustprint.api.modules.fingerprint.exceptions import UnknownModuleError
from trustprint.api.modules.fingerprint.services.validators.base import (
    SignalValidator,
    ValidatorRegistry,
)
from trustprint.api.modules.fingerprint.services.validators.screen import (
    ScreenValidator,
)
from trustprint.api.modules.fingerprint.services.validators.webgl import (
    WebGLValidator,
)

BUILTIN_VALIDATORS: Mapping[str, type[SignalValidator]] = {
    ScreenValidator.id: ScreenValidator,
    WebGLValidator.id: WebGLValidator,
}
DEFAULT_VALIDATORS = (ScreenValidator.id, WebGLValidator.id)


def build_validator_registry(
    names: Iterable[str] = DEFAULT_VALIDATORS,
    weights: Mapping[str, float] | None = None,
) -> ValidatorRegistry:
    weights = weights or {}
    validators: list[SignalValidator] = []
    for name in names:
        validator_cls = BUILTIN_VALIDATORS.get(name)
        if validator_cls is None:
            raise UnknownModuleError("validator", name, list(BUILTIN_VALIDATORS))
        validators.append(validator_cls(weight=weights.get(name)))
    return ValidatorRegistry(validators)


__all__ = (
    "BUILTIN_VALIDATORS",
    "DEFAULT_VALIDATORS",
    "ScreenValidator",
    "SignalValidator",
    "ValidatorRegistry",
    "WebGLValidator",
    "build_validator_registry",
)
