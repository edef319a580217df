"""Root-cause analyses over question logs.

Panic cascades, fatigue by question position, guessing, prerequisite
weaknesses, confidence calibration and speed against accuracy.
"""
import logging
from collections import Counter, defaultdict
from typing import Optional

from exam_analytics.models import (
    DependencyAlert, GuessStats, PanicEvent, QuestionOutcome, QuestionStatus, TestAttempt,
)

logger = logging.getLogger(__name__)

GUESS_REASON = "Guess"
ERROR_STATUSES = (QuestionStatus.WRONG, QuestionStatus.PARTIALLY_CORRECT)
CASCADE_STATUSES = (QuestionStatus.WRONG, QuestionStatus.UNANSWERED)
SINGLE_CORRECT_SECONDS = 120
DEFAULT_QUESTION_SECONDS = 180
CALIBRATION_BAND = 20

# topic -> prerequisite topics
TOPIC_DEPENDENCIES = {
    "Motion in 1D": ["Math in Physics", "Units & Dimensions"],
    "Motion in 2D": ["Motion in 1D", "Math in Physics"],
    "Laws of Motion": ["Motion in 1D", "Motion in 2D"],
    "Work Power Energy": ["Laws of Motion"],
    "COM & Collisions": ["Laws of Motion", "Work Power Energy"],
    "Rotational Motion": ["COM & Collisions", "Work Power Energy"],
    "Gravitation": ["Laws of Motion", "Work Power Energy"],
    "Properties of Fluids": ["Laws of Motion"],
    "Oscillations": ["Motion in 1D", "Laws of Motion"],
    "Waves & Sound": ["Oscillations"],
    "Electrostatics": ["Math in Physics", "Work Power Energy"],
    "Current Electricity": ["Electrostatics"],
    "Magnetism & Current": ["Current Electricity", "Math in Physics"],
    "EMI": ["Magnetism & Current"],
    "AC Circuits": ["EMI"],
    "Ray Optics": ["Math in Physics"],
    "Wave Optics": ["Waves & Sound", "Ray Optics"],
    "Atomic Physics": ["Dual Nature"],
    "Nuclear Physics": ["Atomic Physics"],
    "Functions": ["Sets & Relations"],
    "Trigonometric Functions": ["Trigonometry", "Functions"],
    "ITF": ["Functions", "Trigonometry", "Trigonometric Functions"],
    "Limits": ["Functions"],
    "C&D": ["Limits"],
    "AOD": ["C&D", "Differentiation"],
    "Indefinite Integration": ["AOD", "Trigonometry"],
    "Definite Integration": ["Indefinite Integration"],
    "Differential Eqns": ["Definite Integration"],
    "Probability": ["P&C", "Sets & Relations"],
    "Vector Algebra": ["Trigonometry"],
    "3D Geometry": ["Vector Algebra", "Straight Lines"],
    "Circle": ["Straight Lines"],
    "Parabola": ["Straight Lines", "Circle"],
    "Ellipse": ["Straight Lines", "Circle"],
    "Hyperbola": ["Straight Lines", "Circle"],
    "Atomic Structure": ["Mole Concept"],
    "Chemical Bonding": ["Atomic Structure", "Periodic Table"],
    "Thermodynamics (C)": ["Mole Concept", "States of Matter"],
    "Chemical Equilibrium": ["Thermodynamics (C)", "Mole Concept"],
    "Ionic Equilibrium": ["Chemical Equilibrium"],
    "Redox Reactions": ["Mole Concept"],
    "Electrochemistry": ["Redox Reactions", "Chemical Equilibrium"],
    "Chemical Kinetics": ["Chemical Equilibrium"],
    "GOC": ["Chemical Bonding"],
    "Hydrocarbons": ["GOC"],
    "Haloalkanes & Haloarenes": ["Hydrocarbons"],
    "Alcohols, Phenols & Ethers": ["Haloalkanes & Haloarenes"],
    "Aldehydes & Ketones": ["Alcohols, Phenols & Ethers"],
    "Carboxylic Acids": ["Aldehydes & Ketones"],
    "Amines": ["Haloalkanes & Haloarenes"],
    "Coordination Compounds": ["Chemical Bonding", "d & f Block"],
}


def _has_topic(log: QuestionOutcome) -> bool:
    return bool(log.topic) and log.topic != "N/A"


def _cascade_cost(log: QuestionOutcome) -> float:
    """Marks forgone on a missed question, plus the penalty when it was answered wrong."""
    scheme = log.marking_scheme()
    penalty = abs(scheme.wrong) if log.status == QuestionStatus.WRONG else 0
    return scheme.correct + penalty


def panic_events(
    logs: list[QuestionOutcome],
    reports: Optional[list[TestAttempt]] = None,
    min_chain: int = 3,
    limit: int = 5,
) -> list[PanicEvent]:
    """Runs of consecutive wrong or unanswered questions within a paper.

    A run of at least min_chain questions is recorded, whether it ends on
    an answered question or at the end of the paper. The costliest runs
    come first.
    """
    names = {r.id: r.name for r in reports or []}
    by_test = defaultdict(list)
    for log in logs:
        by_test[log.test_id].append(log)

    events = []
    for test_id, test_logs in by_test.items():
        chain: list[QuestionOutcome] = []
        for log in sorted(test_logs, key=lambda l: l.question_number) + [None]:
            if log is not None and log.status in CASCADE_STATUSES:
                chain.append(log)
                continue
            if len(chain) >= min_chain:
                events.append(PanicEvent(
                    test_id=test_id,
                    test_name=names.get(test_id, "Unknown Test"),
                    start_question=chain[0].question_number,
                    end_question=chain[-1].question_number,
                    length=len(chain),
                    lost_marks=sum(_cascade_cost(l) for l in chain),
                ))
            chain = []

    events.sort(key=lambda e: e.lost_marks, reverse=True)
    logger.debug("Found %d panic cascades across %d tests", len(events), len(by_test))
    return events[:limit]


def fatigue_curve(logs: list[QuestionOutcome], bucket_size: int = 10) -> list[dict]:
    """Error rate per block of question numbers (1-10, 11-20, ...)."""
    attempts: Counter = Counter()
    errors: Counter = Counter()
    for log in logs:
        if log.question_number < 1:
            continue
        start = (log.question_number - 1) // bucket_size * bucket_size + 1
        attempts[start] += 1
        if log.status in ERROR_STATUSES:
            errors[start] += 1
    return [
        {
            "range": f"{start}-{start + bucket_size - 1}",
            "attempts": attempts[start],
            "errors": errors[start],
            "error_rate": round(errors[start] / attempts[start] * 100, 1),
        }
        for start in sorted(attempts)
    ]


def guess_stats(logs: list[QuestionOutcome]) -> GuessStats:
    """How guessed questions paid off.

    A question counts as a guess when its reason is "Guess", whatever its
    outcome.
    """
    guesses = [log for log in logs if log.error_reason == GUESS_REASON]
    correct = sum(1 for log in guesses if log.status == QuestionStatus.FULLY_CORRECT)
    net = sum(log.marks_awarded for log in guesses)
    available = sum(log.marking_scheme().correct for log in guesses)
    risky = [log for log in guesses if log.marking_scheme().wrong < 0]
    return GuessStats(
        total_guesses=len(guesses),
        correct_guesses=correct,
        efficiency=round(net / available * 100, 1) if available else 0.0,
        net_score_impact=net,
        intuition_score=round(correct / len(guesses) * 100, 1) if guesses else 0.0,
        safe_guesses=len(guesses) - len(risky),
        risky_guesses=len(risky),
        risky_misses=sum(1 for log in risky if log.status == QuestionStatus.WRONG),
    )


def dependency_alerts(
    logs: list[QuestionOutcome],
    dependencies: Optional[dict[str, list[str]]] = None,
) -> list[DependencyAlert]:
    """Weak topics whose prerequisites are weak as well (most errors first)."""
    dependencies = TOPIC_DEPENDENCIES if dependencies is None else dependencies
    errors = Counter(log.topic for log in logs if _has_topic(log) and log.status in ERROR_STATUSES)
    alerts = [
        DependencyAlert(topic=topic, root_cause_topic=parent, error_count=count)
        for topic, count in errors.items()
        for parent in dependencies.get(topic, [])
        if parent in errors
    ]
    alerts.sort(key=lambda a: a.error_count, reverse=True)
    return alerts


def classify_calibration(avg_confidence: float, accuracy: float) -> str:
    gap = avg_confidence - accuracy
    if gap > CALIBRATION_BAND:
        return "Overconfident (Blind Spot)"
    if gap < -CALIBRATION_BAND:
        return "Underconfident (Imposter)"
    return "Calibrated"


def confidence_calibration(logs: list[QuestionOutcome], min_attempts: int = 3) -> list[dict]:
    """Stated confidence against actual accuracy per topic.

    Only outcomes with a recorded confidence count. Partially correct
    answers earn half credit.
    """
    attempts: Counter = Counter()
    credit: Counter = Counter()
    confidence: Counter = Counter()
    for log in logs:
        if not _has_topic(log) or log.confidence is None:
            continue
        attempts[log.topic] += 1
        confidence[log.topic] += log.confidence
        if log.status == QuestionStatus.FULLY_CORRECT:
            credit[log.topic] += 1
        elif log.status == QuestionStatus.PARTIALLY_CORRECT:
            credit[log.topic] += 0.5

    rows = []
    for topic, count in attempts.items():
        if count < min_attempts:
            continue
        accuracy = credit[topic] / count * 100
        avg_confidence = confidence[topic] / count
        rows.append({
            "topic": topic,
            "attempts": count,
            "accuracy": round(accuracy, 1),
            "avg_confidence": round(avg_confidence, 1),
            "label": classify_calibration(avg_confidence, accuracy),
        })
    rows.sort(key=lambda r: r["avg_confidence"] - r["accuracy"], reverse=True)
    return rows


def question_seconds(log: QuestionOutcome) -> float:
    """Recorded time on a question, or a default by question type."""
    if log.time_spent:
        return log.time_spent
    if log.question_type.lower().startswith("single"):
        return SINGLE_CORRECT_SECONDS
    return DEFAULT_QUESTION_SECONDS


def speed_vs_accuracy(logs: list[QuestionOutcome], min_attempts: int = 2) -> list[dict]:
    """Average time and accuracy per topic, placed in a quadrant.

    Quadrants are split at the mean accuracy and mean time of the topics
    that qualify.
    """
    attempts: Counter = Counter()
    correct: Counter = Counter()
    seconds: Counter = Counter()
    for log in logs:
        if not _has_topic(log):
            continue
        attempts[log.topic] += 1
        seconds[log.topic] += question_seconds(log)
        if log.status == QuestionStatus.FULLY_CORRECT:
            correct[log.topic] += 1

    rows = [
        {
            "topic": topic,
            "attempts": count,
            "accuracy": correct[topic] / count * 100,
            "avg_time": seconds[topic] / count,
        }
        for topic, count in attempts.items()
        if count >= min_attempts
    ]
    if not rows:
        return []
    mean_accuracy = sum(r["accuracy"] for r in rows) / len(rows)
    mean_time = sum(r["avg_time"] for r in rows) / len(rows)
    for row in rows:
        accurate = row["accuracy"] > mean_accuracy
        fast = row["avg_time"] < mean_time
        if accurate:
            row["quadrant"] = "mastery" if fast else "slow but sure"
        else:
            row["quadrant"] = "rushed" if fast else "gap"
        row["accuracy"] = round(row["accuracy"], 1)
        row["avg_time"] = round(row["avg_time"], 1)
    rows.sort(key=lambda r: r["accuracy"])
    return rows
