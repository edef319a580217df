"""Off-thread forecasting.

The Monte Carlo rank forecast is the one computation heavy enough to keep off
the caller's thread. Requests and responses are plain dataclasses so they can
cross a process boundary. Every wait is bounded: a request that does not
finish within its timeout is cancelled and surfaces as ForecastTimeout.
"""
import concurrent.futures
import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from exam_analytics.dashboard import dashboard_kpis
from exam_analytics.forecast import forecast_percentile, forecast_rank
from exam_analytics.models import (
    DashboardKpis, PanicEvent, PercentileForecast, QuestionOutcome, RankForecast, TestAttempt,
)
from exam_analytics.root_cause import panic_events

logger = logging.getLogger(__name__)

DEFAULT_FORECAST_TIMEOUT = 30.0


class ForecastTimeout(TimeoutError):
    """A forecast request did not complete within its bounded wait."""


@dataclass
class ForecastRequest:
    reports: list[TestAttempt]
    logs: list[QuestionOutcome] = field(default_factory=list)
    target_rank: Optional[int] = None
    cohort_size: Optional[float] = None
    seed: Optional[int] = None


@dataclass
class ForecastResponse:
    rank: Optional[RankForecast]
    percentile: Optional[PercentileForecast]
    kpis: Optional[DashboardKpis]
    panic: list[PanicEvent] = field(default_factory=list)


def run_forecast(request: ForecastRequest) -> ForecastResponse:
    """Compute every forecast for a snapshot. Runs inside the worker."""
    rng = random.Random(request.seed)
    return ForecastResponse(
        rank=forecast_rank(request.reports, rng=rng, target_rank=request.target_rank),
        percentile=forecast_percentile(request.reports, cohort_size=request.cohort_size),
        kpis=dashboard_kpis(request.reports),
        panic=panic_events(request.logs, request.reports),
    )


class ForecastWorker:
    """Runs forecast requests on an executor (a process pool unless one is given)."""

    def __init__(
        self,
        executor: Optional[concurrent.futures.Executor] = None,
        timeout: float = DEFAULT_FORECAST_TIMEOUT,
    ):
        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ProcessPoolExecutor(max_workers=1)
        self.timeout = timeout

    def submit(self, request: ForecastRequest) -> concurrent.futures.Future:
        logger.info("Submitting forecast request for %d reports", len(request.reports))
        return self._executor.submit(run_forecast, request)

    def compute(self, request: ForecastRequest, timeout: Optional[float] = None) -> ForecastResponse:
        wait = self.timeout if timeout is None else timeout
        future = self.submit(request)
        try:
            return future.result(timeout=wait)
        except concurrent.futures.TimeoutError as exc:
            future.cancel()
            logger.warning("Forecast request timed out after %.1fs", wait)
            raise ForecastTimeout(f"forecast did not complete within {wait}s") from exc

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
