import math

import pytest

from exam_analytics.marking import DEFAULT_SCHEME, marks_for, parse_marking_scheme
from exam_analytics.metrics import historical_accuracy, subject_metrics
from exam_analytics.models import MarkingScheme, QuestionStatus, SubjectScore

from conftest import make_report


def test_parse_scheme_from_label():
    assert parse_marking_scheme("Single Correct (+4, -1)") == MarkingScheme(4, -1)
    assert parse_marking_scheme("Integer (+3, 0)") == MarkingScheme(3, 0)
    assert parse_marking_scheme("Multiple Correct ( +4 , -2 )") == MarkingScheme(4, -2)


def test_explicit_marks_win_over_label():
    assert parse_marking_scheme("Single Correct (+4, -1)", positive=3, negative=0) == MarkingScheme(3, 0)


def test_keyword_defaults():
    assert parse_marking_scheme("Single Correct") == MarkingScheme(3, -1)
    assert parse_marking_scheme("multiple correct") == MarkingScheme(4, -2)
    assert parse_marking_scheme("Integer") == MarkingScheme(3, 0)


def test_malformed_scheme_falls_back_to_default():
    assert parse_marking_scheme("Matrix Match (4, 1)") == DEFAULT_SCHEME
    assert parse_marking_scheme("") == DEFAULT_SCHEME
    assert parse_marking_scheme(None) == DEFAULT_SCHEME
    assert DEFAULT_SCHEME == MarkingScheme(4, -1)


def test_marks_for_status():
    scheme = MarkingScheme(4, -1)
    assert marks_for(QuestionStatus.FULLY_CORRECT, scheme) == 4
    assert marks_for(QuestionStatus.WRONG, scheme) == -1
    assert marks_for(QuestionStatus.UNANSWERED, scheme) == 0
    assert marks_for(QuestionStatus.PARTIALLY_CORRECT, scheme) is None


def test_subject_metrics():
    m = subject_metrics(SubjectScore(marks=35, correct=10, wrong=5, partial=0), total_questions=25)
    assert m.accuracy == 10 / 15 * 100
    assert m.attempt_rate == pytest.approx(60.0)
    assert m.cw_ratio == 2.0
    assert m.spaq == 35 / 15
    assert m.unattempted_percent == pytest.approx(40.0)
    assert m.negative_mark_impact == 5 / 40 * 100
    assert m.score_potential_realized == 35 / 40 * 100


def test_subject_metrics_zero_wrong_is_infinite_ratio():
    m = subject_metrics(SubjectScore(marks=40, correct=10))
    assert math.isinf(m.cw_ratio)


def test_subject_metrics_zero_denominators_are_zero():
    m = subject_metrics(SubjectScore(), total_questions=0)
    assert m.accuracy == 0.0
    assert m.attempt_rate == 0.0
    assert m.cw_ratio == 0.0
    assert m.spaq == 0.0
    assert m.unattempted_percent == 0.0
    assert m.negative_mark_impact == 0.0
    assert m.score_potential_realized == 0.0


def test_historical_accuracy():
    reports = [
        make_report("t1", 100, 10, subjects={"physics": SubjectScore(correct=8, wrong=2)}),
        make_report("t2", 100, 10, subjects={"physics": SubjectScore(correct=6, wrong=4)}),
    ]
    acc = historical_accuracy(reports, ["physics", "maths"])
    assert acc["physics"] == pytest.approx(70.0)
    assert acc["maths"] == 0.0
