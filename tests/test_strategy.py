# tests/test_strategy.py
import pytest

from exam_analytics.models import MarkingScheme, SubjectPlan
from exam_analytics.strategy import (
    EXAM_PRESETS, default_plans, fatigue_factor, panic_factor, simulate,
)

MAINS = MarkingScheme(4, -1)


def plan(subject, time_alloc=60, attempts=20, accuracy=0.6, ideal=2.0):
    return SubjectPlan(subject, time_alloc, attempts, accuracy, ideal)


def test_no_panic_when_time_is_sufficient():
    for confidence in (0.0, 0.3, 1.0):
        assert panic_factor(2.0, 2.0, confidence) == 1.0
        assert panic_factor(5.0, 2.0, confidence) == 1.0


def test_panic_softened_by_confidence():
    nervous = panic_factor(1.0, 2.0, 0.0)
    calm = panic_factor(1.0, 2.0, 1.0)
    assert nervous == pytest.approx(0.5 ** 1.5)
    assert calm == pytest.approx(0.5 ** 0.75)
    assert nervous < calm < 1.0


def test_fatigue_is_linear_in_position():
    assert [fatigue_factor(i) for i in range(3)] == pytest.approx([1.0, 0.95, 0.9])


def test_single_subject_expected_score():
    result = simulate([plan("physics")], confidence=0.5, marking_scheme=MAINS, max_attempts=25)
    outcome = result.per_subject[0]
    assert outcome.time_per_question == 3.0
    assert outcome.panic_factor == 1.0
    assert outcome.effective_accuracy == pytest.approx(0.625)
    assert result.total_score == pytest.approx(42.5)
    assert result.risk_score == 0
    assert result.max_potential == 80


def test_rushed_subject_adds_risk():
    result = simulate([plan("maths", time_alloc=30, attempts=30)], confidence=0.0,
                      marking_scheme=MAINS, max_attempts=25)
    assert result.per_subject[0].panic_factor == pytest.approx(0.5 ** 1.5)
    assert result.risk_score == pytest.approx(0.5 * (30 / 25) * 33)


def test_risk_is_clamped_to_100():
    plans = [plan(s, time_alloc=1, attempts=90) for s in ("physics", "chemistry", "maths")]
    result = simulate(plans, confidence=0.0, marking_scheme=MAINS, max_attempts=25)
    assert result.risk_score == 100


def test_full_confidence_has_no_risk():
    result = simulate([plan("maths", time_alloc=10, attempts=30)], confidence=1.0,
                      marking_scheme=MAINS, max_attempts=25)
    assert result.risk_score == 0


def test_order_applies_fatigue():
    plans = [plan("physics"), plan("maths")]
    first = simulate(plans, 0.5, MAINS, 25, order=["physics", "maths"])
    swapped = simulate(plans, 0.5, MAINS, 25, order=["maths", "physics"])
    assert [o.subject for o in swapped.per_subject] == ["maths", "physics"]
    assert swapped.per_subject[0].fatigue_factor == 1.0
    assert first.per_subject[1].fatigue_factor == pytest.approx(0.95)
    assert first.total_score == pytest.approx(swapped.total_score)


def test_zero_attempts_is_safe():
    result = simulate([plan("physics", attempts=0)], 0.5, MAINS, 25)
    assert result.total_score == 0
    assert result.per_subject[0].time_per_question == 0.0


def test_accuracy_capped_at_one():
    result = simulate([plan("physics", accuracy=1.0)], 1.0, MAINS, 25)
    assert result.per_subject[0].effective_accuracy == 1.0
    assert result.total_score == 80


def test_default_plans_use_preset():
    plans = default_plans("advanced", accuracy={"physics": 80.0})
    assert [p.attempt_target for p in plans] == [12, 12, 8]
    assert plans[0].base_accuracy == pytest.approx(0.8)
    assert plans[1].base_accuracy == pytest.approx(0.5)
    assert plans[2].ideal_time_per_question == pytest.approx(2.5)
    assert EXAM_PRESETS["advanced"].scheme == MarkingScheme(3, -1)
