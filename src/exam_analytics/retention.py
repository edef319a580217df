"""Topic mastery rating and forgetting-curve retention."""
import math
from datetime import date
from typing import Optional

from exam_analytics.models import QuestionOutcome, QuestionStatus, RetentionResult, SyllabusStatus, TestAttempt

BASE_RATING = 1000
CORRECT_MARK_WEIGHT = 5  # +4 question -> +20
WRONG_MARK_WEIGHT = 10  # -1 question -> -10
STATUS_BONUS = {
    SyllabusStatus.COMPLETED: 200,
    SyllabusStatus.REVISING: 300,
}

BASE_STABILITY_DAYS = 7
REVISION_STABILITY_GAIN = 0.5


def _report_dates(reports: Optional[list[TestAttempt]]) -> dict[str, date]:
    return {r.id: r.date for r in reports or []}


def topic_logs(topic: str, logs: list[QuestionOutcome], reports: Optional[list[TestAttempt]] = None) -> list[QuestionOutcome]:
    """Outcomes for a topic in chronological order (test date, then question number)."""
    matches = [log for log in logs if log.topic == topic]
    if reports is None:
        return matches
    dates = _report_dates(reports)
    return sorted(matches, key=lambda log: (dates.get(log.test_id, date.min), log.question_number))


def mastery_score(
    topic: str,
    logs: list[QuestionOutcome],
    syllabus_status: Optional[SyllabusStatus] = None,
    reports: Optional[list[TestAttempt]] = None,
) -> float:
    """ELO-like rating for a topic.

    Correct answers raise the rating in proportion to the question's positive
    marks; wrong and partially correct answers lower it in proportion to the
    negative marks. A completed or revising topic earns a fixed bonus.
    """
    score = BASE_RATING
    for log in topic_logs(topic, logs, reports):
        scheme = log.marking_scheme()
        if log.status == QuestionStatus.FULLY_CORRECT:
            score += CORRECT_MARK_WEIGHT * scheme.correct
        elif log.status in (QuestionStatus.WRONG, QuestionStatus.PARTIALLY_CORRECT):
            score -= WRONG_MARK_WEIGHT * abs(scheme.wrong)
    score += STATUS_BONUS.get(syllabus_status, 0)
    return max(0, score)


def last_interaction(topic: str, logs: list[QuestionOutcome], reports: list[TestAttempt]) -> Optional[date]:
    """Date of the most recent test in which the topic appears, or None."""
    dates = _report_dates(reports)
    seen = [dates[log.test_id] for log in logs if log.topic == topic and log.test_id in dates]
    return max(seen) if seen else None


def stability_days(revision_count: int) -> float:
    return BASE_STABILITY_DAYS * (1 + max(0, revision_count) * REVISION_STABILITY_GAIN)


def retention_fraction(days_since: float, revision_count: int = 0) -> float:
    return math.exp(-days_since / stability_days(revision_count))


def classify_retention(percentage: int) -> str:
    if percentage < 50:
        return "critical"
    if percentage < 80:
        return "fading"
    return "good"


def retention(
    topic: str,
    logs: list[QuestionOutcome],
    reports: list[TestAttempt],
    revision_count: int = 0,
    syllabus_status: Optional[SyllabusStatus] = SyllabusStatus.NOT_STARTED,
    today: Optional[date] = None,
) -> RetentionResult:
    """Estimated memory retention for a topic.

    Untested topics are "dormant" when not started (days_since is the -1
    sentinel) and "fresh" otherwise.
    """
    last = last_interaction(topic, logs, reports)
    if last is None:
        if syllabus_status in (None, SyllabusStatus.NOT_STARTED):
            return RetentionResult(percentage=0, status="dormant", days_since=-1)
        return RetentionResult(percentage=100, status="fresh", days_since=0)

    today = today or date.today()
    days_since = abs((today - last).days)
    percentage = round(retention_fraction(days_since, revision_count) * 100)
    return RetentionResult(percentage=percentage, status=classify_retention(percentage), days_since=days_since)
