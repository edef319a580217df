"""What-if simulation of an exam time and attempt strategy.

Two penalties shape expected accuracy. Rushing below the ideal time per
question applies a non-linear panic factor, softened by confidence; each
subject later in the attempt order loses 5% to fatigue.
"""
from dataclasses import dataclass
from typing import Optional

from exam_analytics.models import MarkingScheme, StrategyResult, SubjectOutcome, SubjectPlan

FATIGUE_PER_POSITION = 0.05
CONFIDENCE_ACCURACY_BONUS = 0.05
PANIC_EXPONENT = 1.5
RISK_SCALE = 33
MAX_RISK = 100

DEFAULT_MINUTES_PER_SUBJECT = 60
DEFAULT_BASE_ACCURACY = 50.0
DEFAULT_IDEAL_SECONDS = {"physics": 120, "chemistry": 60, "maths": 150}


@dataclass(frozen=True)
class ExamPreset:
    scheme: MarkingScheme
    max_attempts: int
    attempt_targets: dict


EXAM_PRESETS = {
    "mains": ExamPreset(MarkingScheme(4, -1), 25, {"physics": 20, "chemistry": 20, "maths": 15}),
    "advanced": ExamPreset(MarkingScheme(3, -1), 18, {"physics": 12, "chemistry": 12, "maths": 8}),
}


def panic_factor(time_per_question: float, ideal_time_per_question: float, confidence: float) -> float:
    if time_per_question >= ideal_time_per_question:
        return 1.0
    ratio = time_per_question / ideal_time_per_question
    exponent = PANIC_EXPONENT * (1 - confidence * 0.5)
    return ratio ** exponent


def fatigue_factor(index: int) -> float:
    return 1 - index * FATIGUE_PER_POSITION


def _ordered(plans: list[SubjectPlan], order: Optional[list[str]]) -> list[SubjectPlan]:
    if not order:
        return list(plans)
    rank = {name: i for i, name in enumerate(order)}
    return sorted(plans, key=lambda p: rank.get(p.subject, len(rank)))


def simulate(
    plans: list[SubjectPlan],
    confidence: float,
    marking_scheme: MarkingScheme,
    max_attempts: int,
    order: Optional[list[str]] = None,
) -> StrategyResult:
    """Expected score and a 0-100 risk score for a strategy. Pure; cheap to rerun."""
    confidence = min(1.0, max(0.0, confidence))
    per_correct = marking_scheme.correct
    per_wrong = abs(marking_scheme.wrong)

    outcomes = []
    for index, plan in enumerate(_ordered(plans, order)):
        attempts = plan.attempt_target
        ideal = plan.ideal_time_per_question
        tpq = plan.time_alloc / attempts if attempts > 0 else 0.0
        panic = panic_factor(tpq, ideal, confidence)
        fatigue = fatigue_factor(index)
        accuracy = (plan.base_accuracy + confidence * CONFIDENCE_ACCURACY_BONUS) * panic * fatigue
        accuracy = max(0.0, min(1.0, accuracy))

        expected_correct = attempts * accuracy
        expected_wrong = attempts * (1 - accuracy)
        score = expected_correct * per_correct - expected_wrong * per_wrong

        shortfall = max(0.0, (ideal - tpq) / ideal) if ideal > 0 else 0.0
        load = attempts / max_attempts if max_attempts > 0 else 0.0
        risk = shortfall * load * RISK_SCALE * (1 - confidence)

        outcomes.append(SubjectOutcome(
            subject=plan.subject,
            time_per_question=tpq,
            panic_factor=panic,
            fatigue_factor=fatigue,
            effective_accuracy=accuracy,
            score=score,
            risk=risk,
        ))

    return StrategyResult(
        per_subject=outcomes,
        total_score=sum(o.score for o in outcomes),
        risk_score=min(MAX_RISK, max(0.0, sum(o.risk for o in outcomes))),
        max_potential=sum(p.attempt_target * per_correct for p in plans),
    )


def default_plans(
    preset: str = "mains",
    accuracy: Optional[dict[str, float]] = None,
    ideal_seconds: Optional[dict[str, float]] = None,
) -> list[SubjectPlan]:
    """Starting plans for a preset: 60 minutes per subject, historical accuracy in percent."""
    exam = EXAM_PRESETS[preset]
    accuracy = accuracy or {}
    ideal_seconds = ideal_seconds or DEFAULT_IDEAL_SECONDS
    return [
        SubjectPlan(
            subject=subject,
            time_alloc=DEFAULT_MINUTES_PER_SUBJECT,
            attempt_target=attempts,
            base_accuracy=(accuracy.get(subject) or DEFAULT_BASE_ACCURACY) / 100,
            ideal_time_per_question=ideal_seconds.get(subject, DEFAULT_IDEAL_SECONDS.get(subject, 120)) / 60,
        )
        for subject, attempts in exam.attempt_targets.items()
    ]
