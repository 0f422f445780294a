"""
Tests for rule-based triage into stability / formulary quadrants.
"""

import pytest

from dermopt.config.settings import TriageSettings
from dermopt.core.models import FormularyDrug
from dermopt.core.types import DiagnosisType, Quadrant
from dermopt.engine.triage import TriageInput, classify_triage, is_formulary_aligned, is_stable


def _drug(tier=1, requires_pa=False):
    return FormularyDrug(plan_id="plan-1", drug_name="Amjevita", tier=tier, requires_pa=requires_pa)


def _input(dlqi, months, drug=None):
    return TriageInput(
        diagnosis=DiagnosisType.PSORIASIS, dlqi_score=dlqi, months_stable=months,
        current_drug="adalimumab", formulary_drug=drug,
    )


class TestStability:
    """can_dose_reduce holds exactly when DLQI <= 5 and months stable >= 6."""

    @pytest.mark.parametrize(
        ("dlqi", "months", "expected"),
        [
            (0, 6, True),
            (5, 6, True),
            (5, 24, True),
            (6, 6, False),
            (5, 5, False),
            (0, 0, False),
            (30, 36, False),
        ],
    )
    def test_truth_table(self, dlqi, months, expected):
        assert is_stable(dlqi, months) is expected
        assert classify_triage(_input(dlqi, months, _drug())).can_dose_reduce is expected

    def test_thresholds_are_configurable(self):
        settings = TriageSettings(max_dlqi_for_reduction=2, min_months_stable=12)
        assert not is_stable(3, 12, settings)
        assert is_stable(2, 12, settings)


class TestFormularyAlignment:
    @pytest.mark.parametrize(
        ("drug", "expected"),
        [
            (_drug(tier=1), True),
            (_drug(tier=2), True),
            (_drug(tier=3), False),
            (_drug(tier=1, requires_pa=True), False),
            (None, False),
        ],
    )
    def test_aligned(self, drug, expected):
        assert is_formulary_aligned(drug) is expected


class TestClassifyTriage:
    @pytest.mark.parametrize(
        ("dlqi", "months", "drug", "quadrant", "should_switch"),
        [
            (2, 12, _drug(tier=1), Quadrant.STABLE_FORMULARY_ALIGNED, False),
            (2, 12, _drug(tier=3), Quadrant.STABLE_NON_FORMULARY, True),
            (2, 12, _drug(tier=2, requires_pa=True), Quadrant.STABLE_NON_FORMULARY, True),
            (2, 12, None, Quadrant.STABLE_NON_FORMULARY, True),
            (12, 2, _drug(tier=1), Quadrant.UNSTABLE_FORMULARY_ALIGNED, False),
            (12, 2, _drug(tier=4), Quadrant.UNSTABLE_NON_FORMULARY, False),
        ],
    )
    def test_quadrants(self, dlqi, months, drug, quadrant, should_switch):
        result = classify_triage(_input(dlqi, months, drug))
        assert result.quadrant == quadrant
        assert result.should_switch is should_switch

    def test_unstable_never_switches_or_reduces(self):
        result = classify_triage(_input(20, 1, None))
        assert not result.can_dose_reduce
        assert not result.should_switch

    def test_reasoning_mentions_inputs(self):
        result = classify_triage(_input(3, 8, None))
        assert "DLQI 3" in result.reasoning
        assert "not on the plan formulary" in result.reasoning

    def test_quadrant_flags(self):
        assert Quadrant.from_flags(True, False) == Quadrant.STABLE_NON_FORMULARY
        assert Quadrant.UNSTABLE_FORMULARY_ALIGNED.is_formulary_aligned
        assert not Quadrant.UNSTABLE_FORMULARY_ALIGNED.is_stable
