import pytest

from trustprint.api.modules.fingerprint.services.core import (
    SignalBundle,
    ValidatorVerdict,
    compute_trust_score,
)
from trustprint.api.modules.fingerprint.services.validators import build_validator_registry


def _verdict(module_id: str, weight: float, is_lying: bool) -> ValidatorVerdict:
    return ValidatorVerdict(module_id=module_id, weight=weight, is_lying=is_lying)


def test_score_is_weighted_share_of_honest_validators():
    verdicts = [_verdict("screen", 40, False), _verdict("webgl", 50, True)]

    assert compute_trust_score(verdicts) == pytest.approx(40 / 90)


def test_all_honest_scores_one_and_all_lying_scores_zero():
    assert compute_trust_score([_verdict("a", 1, False), _verdict("b", 3, False)]) == 1.0
    assert compute_trust_score([_verdict("a", 1, True), _verdict("b", 3, True)]) == 0.0


@pytest.mark.parametrize(
    "verdicts",
    [
        [],
        [_verdict("screen", 0, False)],
        [_verdict("screen", 0, True), _verdict("webgl", 0, False)],
    ],
)
def test_zero_total_weight_is_unknown(verdicts):
    assert compute_trust_score(verdicts) is None


def test_no_signals_with_default_validators_scores_zero():
    verdicts = build_validator_registry().evaluate([])

    assert compute_trust_score(verdicts) == 0.0


def test_screen_spoof_only_costs_its_weight(honest_bundles):
    bundles = [
        SignalBundle(module_id="screen", fields={"width": 10}),
        honest_bundles[1],
    ]

    verdicts = build_validator_registry().evaluate(bundles)

    assert compute_trust_score(verdicts) == pytest.approx(50 / 90)
