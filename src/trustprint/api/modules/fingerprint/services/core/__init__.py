from trustprint.api.modules.fingerprint.services.core.scoring import (
    compute_trust_score,
)
from trustprint.api.modules.fingerprint.services.core.types import (
    EMPTY_EVALUATION,
    CheckType,
    ExecutionMode,
    FingerprintPatch,
    FingerprintRecord,
    NewFingerprint,
    SignalBundle,
    SignalEvaluation,
    SignalFields,
    ValidatorVerdict,
)
from trustprint.api.modules.fingerprint.services.core.utils import (
    FINGERPRINT_ID_LENGTH,
    as_number,
    as_text,
    hash_material,
    utc_now,
)

__all__ = (
    "EMPTY_EVALUATION",
    "FINGERPRINT_ID_LENGTH",
    "CheckType",
    "ExecutionMode",
    "FingerprintPatch",
    "FingerprintRecord",
    "NewFingerprint",
    "SignalBundle",
    "SignalEvaluation",
    "SignalFields",
    "ValidatorVerdict",
    "as_number",
    "as_text",
    "compute_trust_score",
    "hash_material",
    "utc_now",
)
