"""Mastery tier lookup."""
from typing import Optional

from exam_analytics.models import MasteryTier, QuestionOutcome, SyllabusTopic, TestAttempt, TopicProgress
from exam_analytics.retention import mastery_score

# (exclusive lower bound, tier); checked top-down
TIERS = [
    (2000, MasteryTier("Grandmaster", "#f59e0b", "bold yellow")),
    (1500, MasteryTier("Expert", "#a855f7", "magenta")),
    (1200, MasteryTier("Adept", "#22c55e", "green")),
    (1000, MasteryTier("Apprentice", "#3b82f6", "blue")),
]
SEEDLING = MasteryTier("Seedling", "#94a3b8", "dim")


def get_mastery_tier(score: float) -> MasteryTier:
    for threshold, tier in TIERS:
        if score > threshold:
            return tier
    return SEEDLING


def mastery_tiers(
    topics: list[SyllabusTopic],
    logs: list[QuestionOutcome],
    progress: dict[str, TopicProgress],
    reports: Optional[list[TestAttempt]] = None,
) -> dict[str, tuple[float, MasteryTier]]:
    """Score and tier for every syllabus topic."""
    result = {}
    for topic in topics:
        entry = progress.get(topic.name)
        status = entry.status if entry else None
        score = mastery_score(topic.name, logs, status, reports)
        result[topic.name] = (score, get_mastery_tier(score))
    return result
