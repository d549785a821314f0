from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, TypeAlias

SignalValue: TypeAlias = str | int | float | bool
SignalFields: TypeAlias = dict[str, SignalValue]

# Key that carries the module id on the wire; collectors may not emit it.
RESERVED_FIELD = "id"


class CheckType(StrEnum):
    SERVER = "server"
    CLIENT = "client"
    BOTH = "both"


class ExecutionMode(StrEnum):
    AWAITED = "awaited"
    DETACHED = "detached"

    @classmethod
    def from_flag(cls, awaited: bool) -> "ExecutionMode":
        return cls.AWAITED if awaited else cls.DETACHED


@dataclass(frozen=True, slots=True)
class SignalBundle:
    module_id: str
    fields: SignalFields = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.module_id:
            raise ValueError("SignalBundle.module_id must be a non-empty string")
        if RESERVED_FIELD in self.fields:
            raise ValueError(f"SignalBundle fields may not contain {RESERVED_FIELD!r}")
        object.__setattr__(self, "fields", dict(self.fields))


@dataclass(frozen=True, slots=True)
class ValidatorVerdict:
    module_id: str
    weight: float
    is_lying: bool
    group: str | None = None
    error: str | None = None

    @property
    def faulted(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True)
class SignalEvaluation:
    """Validated context handed from the pre-hook to identity and reconciliation."""

    bundles: tuple[SignalBundle, ...]
    verdicts: tuple[ValidatorVerdict, ...]
    trust_score: float | None

    @property
    def is_trust_unknown(self) -> bool:
        return self.trust_score is None

    @property
    def checks(self) -> list[dict[str, Any]]:
        return [
            {"id": v.module_id, "weight": v.weight, "lying": v.is_lying}
            for v in self.verdicts
        ]

    def bundle(self, module_id: str) -> SignalBundle | None:
        for item in self.bundles:
            if item.module_id == module_id:
                return item
        return None


EMPTY_EVALUATION = SignalEvaluation(bundles=(), verdicts=(), trust_score=None)


@dataclass(frozen=True, slots=True)
class FingerprintRecord:
    id: int
    fingerprint_id: str
    created_at: datetime
    updated_at: datetime
    last_seen_at: datetime | None
    ip_addresses: frozenset[str]
    flagged: bool
    trust_score: float | None
    users: frozenset[str]


@dataclass(frozen=True, slots=True)
class NewFingerprint:
    fingerprint_id: str
    trust_score: float | None
    seen_at: datetime
    ip_addresses: frozenset[str] = frozenset()
    users: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class FingerprintPatch:
    """Update applied on a repeat sighting.

    Scalars overwrite (last write wins); ip_address and user_id are unioned
    into the existing sets.
    """

    trust_score: float | None
    seen_at: datetime
    ip_address: str | None = None
    user_id: str | None = None


__all__ = (
    "EMPTY_EVALUATION",
    "RESERVED_FIELD",
    "CheckType",
    "ExecutionMode",
    "FingerprintPatch",
    "FingerprintRecord",
    "NewFingerprint",
    "SignalBundle",
    "SignalEvaluation",
    "SignalFields",
    "SignalValue",
    "ValidatorVerdict",
)
