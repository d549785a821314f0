import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

from trustprint.api.modules.fingerprint.services.core.types import (
    SignalBundle,
    SignalFields,
    ValidatorVerdict,
)

logger = logging.getLogger(__name__)


class SignalValidator(ABC):
    """Server-side check that decides whether one signal bundle is lying.

    ``is_lying`` must be a pure function of the bundle fields and the
    validator's static configuration. Missing, out-of-range or mutually
    inconsistent data counts as lying.
    """

    id: str
    group: str | None = None
    default_weight: float = 0

    def __init__(self, weight: float | None = None):
        resolved = self.default_weight if weight is None else weight
        if resolved < 0:
            raise ValueError(f"Validator {self.id!r} weight must be >= 0, got {resolved}")
        self.weight = float(resolved)

    @abstractmethod
    def is_lying(self, fields: Mapping[str, object]) -> bool: ...

    def format_info(self, fields: Mapping[str, object]) -> str:
        return "".join(f"{key}{fields[key]}" for key in sorted(fields))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, weight={self.weight})"


class ValidatorRegistry:
    def __init__(self, validators: Iterable[SignalValidator] = ()):
        self._validators: tuple[SignalValidator, ...] = tuple(validators)
        ids = [validator.id for validator in self._validators]
        duplicates = sorted({item for item in ids if ids.count(item) > 1})
        if duplicates:
            raise ValueError(f"Duplicate validator ids: {', '.join(duplicates)}")

    @property
    def validators(self) -> tuple[SignalValidator, ...]:
        return self._validators

    def __len__(self) -> int:
        return len(self._validators)

    def _run(self, validator: SignalValidator, fields: SignalFields) -> ValidatorVerdict:
        try:
            is_lying = bool(validator.is_lying(fields))
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Validator failed, treating signal as lying",
                extra={"validator_id": validator.id},
            )
            return ValidatorVerdict(
                module_id=validator.id,
                weight=validator.weight,
                is_lying=True,
                group=validator.group,
                error=f"{type(exc).__name__}: {exc}",
            )

        return ValidatorVerdict(
            module_id=validator.id,
            weight=validator.weight,
            is_lying=is_lying,
            group=validator.group,
        )

    def evaluate(self, bundles: Iterable[SignalBundle]) -> list[ValidatorVerdict]:
        by_id = {bundle.module_id: bundle for bundle in bundles}
        verdicts: list[ValidatorVerdict] = []
        for validator in self._validators:
            bundle = by_id.get(validator.id)
            fields = dict(bundle.fields) if bundle else {}
            verdicts.append(self._run(validator, fields))
        return verdicts

    def format_info(self, bundles: Iterable[SignalBundle]) -> list[str]:
        """Per-validator formatted bundle info, ordered by validator id."""
        by_id = {bundle.module_id: bundle for bundle in bundles}
        formatted: list[str] = []
        for validator in sorted(self._validators, key=lambda item: item.id):
            bundle = by_id.get(validator.id)
            if bundle is None or not bundle.fields:
                continue
            try:
                formatted.append(f"{validator.id}:{validator.format_info(bundle.fields)}")
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Validator failed to format signal info",
                    extra={"validator_id": validator.id},
                )
        return formatted


__all__ = ("SignalValidator", "ValidatorRegistry")
