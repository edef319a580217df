"""Data classes for the exam analytics domain model."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class QuestionStatus(str, Enum):
    FULLY_CORRECT = "Fully Correct"
    PARTIALLY_CORRECT = "Partially Correct"
    WRONG = "Wrong"
    UNANSWERED = "Unanswered"


class SyllabusStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    REVISING = "Revising"


class Weightage(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def weight(self) -> int:
        return {"High": 3, "Medium": 2, "Low": 1}[self.value]


@dataclass(frozen=True)
class MarkingScheme:
    """Marks for a correct answer and (usually non-positive) marks for a wrong one."""
    correct: int
    wrong: int


@dataclass
class SubjectScore:
    marks: float = 0.0
    correct: int = 0
    wrong: int = 0
    partial: int = 0
    unanswered: int = 0
    rank: Optional[int] = None
    max_marks: Optional[float] = None


@dataclass
class TestAttempt:
    id: str
    date: date
    total: SubjectScore
    name: str = ""
    subjects: dict[str, SubjectScore] = field(default_factory=dict)

    @property
    def rank(self) -> Optional[int]:
        """Overall rank, or None when the export carried no positive rank."""
        return self.total.rank if self.total.rank and self.total.rank > 0 else None


@dataclass
class QuestionOutcome:
    test_id: str
    subject: str
    topic: str
    status: QuestionStatus
    marks_awarded: float = 0.0
    question_number: int = 0
    question_type: str = ""
    scheme: Optional[MarkingScheme] = None
    confidence: Optional[int] = None  # 0-100
    error_reason: Optional[str] = None
    time_spent: Optional[float] = None

    def marking_scheme(self) -> MarkingScheme:
        if self.scheme is not None:
            return self.scheme
        from exam_analytics.marking import parse_marking_scheme
        return parse_marking_scheme(self.question_type)


@dataclass
class TopicProgress:
    status: SyllabusStatus = SyllabusStatus.NOT_STARTED
    strength: Optional[str] = None  # "strength" | "weakness" | None
    revision_count: int = 0
    subtopics: dict[str, bool] = field(default_factory=dict)
    completion_date: Optional[date] = None


@dataclass
class SyllabusTopic:
    name: str
    subject: str
    weightage: Weightage = Weightage.MEDIUM


@dataclass
class FlashcardState:
    id: str
    topic: str
    front: str = ""
    back: str = ""
    interval: int = 0
    ease_factor: float = 2.5
    reviews: int = 0
    next_review: Optional[datetime] = None


@dataclass
class RetentionResult:
    percentage: int
    status: str  # dormant | fresh | critical | fading | good
    days_since: int


@dataclass(frozen=True)
class MasteryTier:
    tier: str
    color: str
    style: str


@dataclass
class DistributionBucket:
    rank: int
    probability: float


@dataclass
class RankForecast:
    slope: float
    intercept: float
    best_case: int
    likely: int
    worst_case: int
    distribution: list[DistributionBucket]
    target_rank: Optional[int] = None
    goal_probability: Optional[int] = None


@dataclass
class TrendPoint:
    name: str
    score: float
    rank: int
    percentile: float
    trend_percentile: float


@dataclass
class PercentileForecast:
    cohort_size: float
    predicted_score: int
    predicted_rank: float
    predicted_percentile: float
    next_index: int
    points: list[TrendPoint]


@dataclass
class RevisionItem:
    topic: str
    weight: float
    reason: str


@dataclass
class NextBestAction:
    topic: str
    subject: str
    error_count: int
    dominant_reason: str
    potential_gain: int


@dataclass
class PanicEvent:
    test_id: str
    test_name: str
    start_question: int
    end_question: int
    length: int
    lost_marks: float


@dataclass
class GuessStats:
    total_guesses: int
    correct_guesses: int
    efficiency: float  # net marks / marks available, percent
    net_score_impact: float
    intuition_score: float  # percent of guesses fully correct
    safe_guesses: int  # no negative marking
    risky_guesses: int
    risky_misses: int


@dataclass
class DependencyAlert:
    topic: str
    root_cause_topic: str
    error_count: int


@dataclass
class SubjectPlan:
    subject: str
    time_alloc: float  # minutes
    attempt_target: int
    base_accuracy: float  # 0-1
    ideal_time_per_question: float  # minutes


@dataclass
class SubjectOutcome:
    subject: str
    time_per_question: float
    panic_factor: float
    fatigue_factor: float
    effective_accuracy: float
    score: float
    risk: float


@dataclass
class StrategyResult:
    per_subject: list[SubjectOutcome]
    total_score: float
    risk_score: float
    max_potential: float


@dataclass
class SubjectMetrics:
    accuracy: float
    attempt_rate: float
    cw_ratio: float
    spaq: float
    unattempted_percent: float
    negative_mark_impact: float
    score_potential_realized: float


@dataclass
class DashboardKpis:
    latest_score: float
    latest_rank: Optional[int]
    avg_score: float
    avg_rank: Optional[float]
    avg_subject_scores: dict[str, float]
    strongest_subject: Optional[str]
    score_std_dev: float
    consistency_score: float
    score_trend: str  # up | down | flat
    sharpe_ratio: Optional[float] = None
    zone: Optional[str] = None
