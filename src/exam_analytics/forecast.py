"""Rank and percentile forecasting from test history.

Rank is modelled as log-linear in score: ln(rank) = slope * score + intercept.
Scores are then resampled from a normal distribution fitted to the student's
history and pushed through the model, giving an empirical rank distribution.
Only reports with a known rank take part. Fewer than MIN_REPORTS_FOR_FORECAST
ranked reports, or a history where every score is identical, yields None
rather than a forecast.
"""
import logging
import math
import random
import statistics
from typing import Optional

from exam_analytics.models import DistributionBucket, PercentileForecast, RankForecast, TestAttempt, TrendPoint

logger = logging.getLogger(__name__)

MIN_REPORTS_FOR_FORECAST = 3
SIMULATION_COUNT = 5000
BUCKET_COUNT = 40
DEFAULT_TARGET_RANK = 1000
DEFAULT_COHORT_SIZE = 10000
MAX_LOG_RANK = 700.0  # keeps math.exp finite


def chronological(reports: list[TestAttempt]) -> list[TestAttempt]:
    return sorted(reports, key=lambda r: r.date)


def ranked(reports: list[TestAttempt]) -> list[TestAttempt]:
    """Reports that carry a rank; the others cannot anchor a rank model."""
    return [r for r in reports if r.rank is not None]


def linear_regression(xs: list[float], ys: list[float]) -> Optional[tuple[float, float]]:
    """Ordinary least squares. Returns (slope, intercept), or None when every x is equal."""
    n = len(xs)
    if n == 0:
        return None
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)
    denominator = n * sum_xx - sum_x * sum_x
    if abs(denominator) <= 1e-12 * max(1.0, n * sum_xx):
        return None
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def fit_log_rank(reports: list[TestAttempt]) -> Optional[tuple[float, float]]:
    reports = ranked(reports)
    xs = [r.total.marks for r in reports]
    ys = [math.log(r.rank) for r in reports]
    return linear_regression(xs, ys)


def box_muller(rng: random.Random) -> float:
    u = 0.0
    v = 0.0
    while u == 0.0:
        u = rng.random()
    while v == 0.0:
        v = rng.random()
    return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


def predict_rank(score: float, slope: float, intercept: float) -> float:
    return math.exp(min(MAX_LOG_RANK, slope * score + intercept))


def _clamp_rank(value: float) -> int:
    return max(1, round(value))


def rank_distribution(ranks: list[float], bucket_count: int = BUCKET_COUNT) -> list[DistributionBucket]:
    """Histogram of sorted simulated ranks between their 1st and 99th percentile."""
    n = len(ranks)
    low = ranks[math.floor(n * 0.01)]
    high = ranks[math.floor(n * 0.99)]
    width = (high - low) / bucket_count
    if width <= 0:
        return [DistributionBucket(rank=_clamp_rank(low), probability=sum(1 for r in ranks if r == low) / n)]

    counts = [0] * bucket_count
    for r in ranks:
        if r < low or r > high:
            continue
        # The top edge belongs to the last bucket.
        counts[min(bucket_count - 1, int((r - low) / width))] += 1
    return [
        DistributionBucket(rank=_clamp_rank(low + (i + 0.5) * width), probability=count / n)
        for i, count in enumerate(counts)
    ]


def forecast_rank(
    reports: list[TestAttempt],
    rng: Optional[random.Random] = None,
    target_rank: Optional[int] = None,
    simulations: int = SIMULATION_COUNT,
) -> Optional[RankForecast]:
    """Monte Carlo rank forecast: best case (p5), likely (p50), worst case (p95)."""
    reports = ranked(reports)
    if len(reports) < MIN_REPORTS_FOR_FORECAST:
        logger.debug("Rank forecast skipped: %d ranked reports", len(reports))
        return None
    fit = fit_log_rank(reports)
    if fit is None:
        logger.debug("Rank forecast skipped: all scores identical")
        return None
    slope, intercept = fit

    scores = [r.total.marks for r in reports]
    mean = statistics.fmean(scores)
    std = statistics.pstdev(scores)
    target = target_rank if target_rank is not None else DEFAULT_TARGET_RANK

    if std == 0:
        rank = predict_rank(mean, slope, intercept)
        logger.debug("Zero score variance, collapsing distribution to rank %.1f", rank)
        return RankForecast(
            slope=slope,
            intercept=intercept,
            best_case=_clamp_rank(rank),
            likely=_clamp_rank(rank),
            worst_case=_clamp_rank(rank),
            distribution=[DistributionBucket(rank=_clamp_rank(rank), probability=1.0)],
            target_rank=target,
            goal_probability=100 if rank <= target else 0,
        )

    rng = rng or random.Random()
    ranks = sorted(
        predict_rank(box_muller(rng) * std + mean, slope, intercept)
        for _ in range(simulations)
    )
    successes = sum(1 for r in ranks if r <= target)

    return RankForecast(
        slope=slope,
        intercept=intercept,
        best_case=_clamp_rank(ranks[math.floor(simulations * 0.05)]),
        likely=_clamp_rank(ranks[math.floor(simulations * 0.50)]),
        worst_case=_clamp_rank(ranks[math.floor(simulations * 0.95)]),
        distribution=rank_distribution(ranks),
        target_rank=target,
        goal_probability=round(successes / simulations * 100),
    )


def forecast_percentile(
    reports: list[TestAttempt],
    cohort_size: Optional[float] = None,
) -> Optional[PercentileForecast]:
    """Extrapolate score and rank one test ahead by regressing on test index."""
    ordered = chronological(ranked(reports))
    if len(ordered) < MIN_REPORTS_FOR_FORECAST:
        return None
    if not cohort_size or cohort_size <= 0:
        cohort_size = max(DEFAULT_COHORT_SIZE, max(r.rank for r in ordered) * 1.2)

    indexes = list(range(len(ordered)))
    score_fit = linear_regression(indexes, [r.total.marks for r in ordered])
    rank_fit = linear_regression(indexes, [r.rank for r in ordered])
    if score_fit is None or rank_fit is None:
        return None

    def to_percentile(rank: float) -> float:
        return (cohort_size - rank) / cohort_size * 100

    next_index = len(ordered)
    predicted_score = score_fit[0] * next_index + score_fit[1]
    predicted_rank = max(1.0, rank_fit[0] * next_index + rank_fit[1])
    points = [
        TrendPoint(
            name=f"T{i + 1}",
            score=r.total.marks,
            rank=r.rank,
            percentile=max(0.0, to_percentile(r.rank)),
            trend_percentile=to_percentile(rank_fit[0] * i + rank_fit[1]),
        )
        for i, r in enumerate(ordered)
    ]
    return PercentileForecast(
        cohort_size=cohort_size,
        predicted_score=round(predicted_score),
        predicted_rank=predicted_rank,
        predicted_percentile=round(to_percentile(predicted_rank), 1),
        next_index=next_index,
        points=points,
    )
