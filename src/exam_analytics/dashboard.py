"""Headline dashboard statistics over the test history."""
import statistics
from typing import Optional

from exam_analytics.forecast import chronological
from exam_analytics.models import DashboardKpis, TestAttempt


def _trend(latest: float, average: float) -> str:
    if latest > average:
        return "up"
    if latest < average:
        return "down"
    return "flat"


def get_zone_label(latest: float, avg: float, std: float) -> str:
    """Bollinger-style band check of the latest score against +-2 std devs."""
    if latest > avg + 2 * std:
        return "Breaking Out (High)"
    if latest < avg - 2 * std:
        return "Breaking Down (Low)"
    return "Stable"


def dashboard_kpis(reports: list[TestAttempt]) -> Optional[DashboardKpis]:
    if not reports:
        return None
    ordered = chronological(reports)
    latest = ordered[-1]
    scores = [r.total.marks for r in ordered]
    avg_score = statistics.fmean(scores)
    ranks = [r.rank for r in ordered if r.rank is not None]
    avg_rank = statistics.fmean(ranks) if ranks else None
    std = statistics.pstdev(scores)
    consistency = (1 - std / avg_score) * 100 if avg_score > 0 else 0.0

    subjects = sorted({name for r in ordered for name in r.subjects})
    avg_subjects = {
        name: statistics.fmean(r.subjects[name].marks for r in ordered if name in r.subjects)
        for name in subjects
    }
    strongest = max(avg_subjects, key=avg_subjects.get) if avg_subjects else None

    kpis = DashboardKpis(
        latest_score=latest.total.marks,
        latest_rank=latest.rank,
        avg_score=avg_score,
        avg_rank=avg_rank,
        avg_subject_scores=avg_subjects,
        strongest_subject=strongest,
        score_std_dev=std,
        consistency_score=consistency,
        score_trend=_trend(latest.total.marks, avg_score),
    )
    if len(ordered) >= 2:
        kpis.sharpe_ratio = round(avg_score / std, 2) if std > 0 else 0.0
        kpis.zone = get_zone_label(latest.total.marks, avg_score, std)
    return kpis
