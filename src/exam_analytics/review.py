"""Revision triage: which topics to study next."""
from collections import Counter
from datetime import date
from typing import Optional

from exam_analytics.models import (
    NextBestAction, QuestionOutcome, QuestionStatus, RevisionItem, SyllabusStatus,
    SyllabusTopic, TestAttempt, TopicProgress,
)
from exam_analytics.retention import last_interaction, retention_fraction

REVISION_LIST_SIZE = 5
FADING_THRESHOLD = 0.7
CRITICAL_THRESHOLD = 0.4
MARKS_PER_FIX = 4


def _revision_reason(
    topic: SyllabusTopic,
    progress: TopicProgress,
    logs: list[QuestionOutcome],
    reports: list[TestAttempt],
    today: date,
) -> Optional[RevisionItem]:
    base = topic.weightage.weight

    last = last_interaction(topic.name, logs, reports)
    if last is not None:
        kept = retention_fraction(abs((today - last).days), progress.revision_count)
        if kept < FADING_THRESHOLD:
            urgency = 2 if kept < CRITICAL_THRESHOLD else 1
            return RevisionItem(topic.name, base * 5 * urgency, "Fading Memory")

    if progress.strength == "weakness":
        return RevisionItem(topic.name, base * 4, "Marked Weakness")
    if progress.status == SyllabusStatus.IN_PROGRESS:
        return RevisionItem(topic.name, base * 2, "In Progress")
    return None


def rank_revision_topics(
    topics: list[SyllabusTopic],
    logs: list[QuestionOutcome],
    reports: list[TestAttempt],
    progress: dict[str, TopicProgress],
    today: Optional[date] = None,
    limit: int = REVISION_LIST_SIZE,
) -> list[RevisionItem]:
    """Top topics to revise, heaviest first.

    Each topic gets at most one reason; fading memory beats a marked weakness,
    which beats an in-progress chapter.
    """
    today = today or date.today()
    items = []
    for topic in topics:
        entry = progress.get(topic.name) or TopicProgress()
        item = _revision_reason(topic, entry, logs, reports, today)
        if item is not None:
            items.append(item)

    if not items:
        items = [
            RevisionItem(t.name, 1, "Continue Progress")
            for t in topics
            if t.name in progress and progress[t.name].status == SyllabusStatus.IN_PROGRESS
        ]

    items.sort(key=lambda i: i.weight, reverse=True)
    return items[:limit]


def next_best_action(logs: list[QuestionOutcome]) -> Optional[NextBestAction]:
    """The topic with the most wrong answers and its most common cause."""
    errors: dict[str, list[QuestionOutcome]] = {}
    for log in logs:
        if log.status == QuestionStatus.WRONG and log.topic and log.topic != "N/A":
            errors.setdefault(log.topic, []).append(log)
    if not errors:
        return None

    topic, wrong = max(errors.items(), key=lambda kv: len(kv[1]))
    reasons = Counter(log.error_reason for log in wrong if log.error_reason)
    dominant = reasons.most_common(1)[0][0] if reasons else "General Practice"
    return NextBestAction(
        topic=topic,
        subject=wrong[0].subject,
        error_count=len(wrong),
        dominant_reason=dominant,
        potential_gain=len(wrong) * MARKS_PER_FIX,
    )


def weak_topics(logs: list[QuestionOutcome], threshold: float = 70.0) -> list[dict]:
    """Topics whose error rate is above 100 - threshold (sorted worst first)."""
    totals: Counter = Counter()
    errors: Counter = Counter()
    subjects = {}
    for log in logs:
        if not log.topic or log.topic == "N/A" or log.status == QuestionStatus.UNANSWERED:
            continue
        totals[log.topic] += 1
        subjects.setdefault(log.topic, log.subject)
        if log.status in (QuestionStatus.WRONG, QuestionStatus.PARTIALLY_CORRECT):
            errors[log.topic] += 1

    weak = [
        {
            "topic": topic,
            "subject": subjects[topic],
            "total": total,
            "errors": errors[topic],
            "error_rate": round(errors[topic] / total * 100, 1),
        }
        for topic, total in totals.items()
        if errors[topic] / total * 100 > 100 - threshold
    ]
    weak.sort(key=lambda w: w["errors"] / w["total"], reverse=True)
    return weak
