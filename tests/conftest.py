from datetime import date

import pytest

from exam_analytics.models import QuestionOutcome, QuestionStatus, SubjectScore, TestAttempt

TODAY = date(2026, 3, 1)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_analytics.db")
    return db_path


def make_report(test_id, marks, rank, when=TODAY, subjects=None):
    return TestAttempt(
        id=test_id,
        date=when,
        name=f"Mock {test_id}",
        total=SubjectScore(marks=marks, rank=rank),
        subjects=subjects or {},
    )


def make_log(test_id, topic, status=QuestionStatus.FULLY_CORRECT, question_type="Single Correct (+4, -1)",
             subject="physics", number=1, reason=None):
    return QuestionOutcome(
        test_id=test_id,
        subject=subject,
        topic=topic,
        status=status,
        question_number=number,
        question_type=question_type,
        error_reason=reason,
    )


@pytest.fixture
def three_reports():
    return [
        make_report("t1", 600, 5000, date(2026, 1, 1)),
        make_report("t2", 650, 3000, date(2026, 1, 15)),
        make_report("t3", 700, 2000, date(2026, 2, 1)),
    ]
