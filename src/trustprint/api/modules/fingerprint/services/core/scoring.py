from collections.abc import Iterable

from trustprint.api.modules.fingerprint.services.core.types import ValidatorVerdict


def compute_trust_score(verdicts: Iterable[ValidatorVerdict]) -> float | None:
    """Weighted share of validators that found no inconsistency.

    Returns None ("unknown") when the executed validators carry no weight,
    which includes the case of no validators at all.
    """
    total = 0.0
    trusted = 0.0
    for verdict in verdicts:
        total += verdict.weight
        if not verdict.is_lying:
            trusted += verdict.weight

    if total <= 0:
        return None
    return min(max(trusted / total, 0.0), 1.0)


__all__ = ("compute_trust_score",)
