"""Per-subject accuracy metrics for a single test attempt."""
import math

from exam_analytics.models import SubjectMetrics, SubjectScore


def subject_metrics(score: SubjectScore, total_questions: int = 25, marks_per_correct: int = 4) -> SubjectMetrics:
    correct, wrong, partial = score.correct, score.wrong, score.partial
    attempted = correct + wrong + partial
    potential = correct * marks_per_correct

    accuracy = correct / (correct + wrong) * 100 if (correct + wrong) > 0 else 0.0
    attempt_rate = attempted / total_questions * 100 if total_questions > 0 else 0.0
    if wrong > 0:
        cw_ratio = correct / wrong
    else:
        # No wrong answers at all: the ratio is unbounded.
        cw_ratio = math.inf if correct > 0 else 0.0
    spaq = score.marks / attempted if attempted > 0 else 0.0
    unattempted = (total_questions - attempted) / total_questions * 100 if total_questions > 0 else 0.0
    negative_impact = wrong / potential * 100 if potential > 0 else 0.0
    realized = score.marks / potential * 100 if potential > 0 else 0.0

    return SubjectMetrics(
        accuracy=accuracy,
        attempt_rate=attempt_rate,
        cw_ratio=cw_ratio,
        spaq=spaq,
        unattempted_percent=unattempted,
        negative_mark_impact=negative_impact,
        score_potential_realized=realized,
    )


def historical_accuracy(reports: list, subjects: list[str]) -> dict[str, float]:
    """Mean accuracy (0-100) per subject across reports; 0.0 where a subject never appears."""
    result = {}
    for subject in subjects:
        values = [
            subject_metrics(r.subjects[subject]).accuracy
            for r in reports
            if subject in r.subjects
        ]
        result[subject] = sum(values) / len(values) if values else 0.0
    return result
