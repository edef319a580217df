import concurrent.futures
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from exam_analytics.app import (
    SessionExitRequested, change_progress, cmd_causes, cmd_dashboard, cmd_progress, cmd_revise, cmd_strategy,
    cmd_syllabus, run_flashcard_session, session_int_prompt, session_prompt,
)
from exam_analytics.db import (
    init_db, list_flashcards, load_topic_progress, save_flashcards, save_question_outcomes, save_test_attempt,
)
from exam_analytics.models import FlashcardState, QuestionStatus, SyllabusStatus, TopicProgress
from exam_analytics.seed import seed_syllabus
from exam_analytics.worker import ForecastTimeout, ForecastWorker

from conftest import TODAY, make_log, make_report


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("exam_analytics.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("exam_analytics.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("exam_analytics.app.Prompt.ask", return_value="hello"):
        result = session_prompt("test prompt")
        assert result == "hello"


def test_session_int_prompt_raises_on_q():
    with patch("exam_analytics.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_int_prompt("rate", choices=["0","1","2","3","4","5"])


def test_session_int_prompt_returns_normal_input():
    with patch("exam_analytics.app.Prompt.ask", return_value="3"):
        result = session_int_prompt("rate", choices=["0","1","2","3","4","5"])
        assert result == 3


def _cards(db_path, count):
    cards = [FlashcardState(id=f"t1-{i}", topic="Optics", front=f"front {i}", back="back") for i in range(count)]
    save_flashcards(db_path, cards)
    return cards


def test_run_flashcard_session_exits_on_q(tmp_db):
    """First card rated, 'q' on the second card's reveal prompt."""
    init_db(tmp_db)
    cards = _cards(tmp_db, 2)
    with patch("exam_analytics.app.Prompt.ask", side_effect=["", "4", "q"]):
        with pytest.raises(SessionExitRequested):
            run_flashcard_session(tmp_db, cards)

    stored = {c.id: c for c in list_flashcards(tmp_db)}
    assert stored["t1-0"].reviews == 1
    assert stored["t1-1"].reviews == 0


def test_run_flashcard_session_rates_every_card(tmp_db):
    init_db(tmp_db)
    cards = _cards(tmp_db, 2)
    with patch("exam_analytics.app.Prompt.ask", side_effect=["", "5", "", "1"]):
        assert run_flashcard_session(tmp_db, cards) == 2
    stored = {c.id: c for c in list_flashcards(tmp_db)}
    assert stored["t1-0"].interval == 1
    assert stored["t1-1"].ease_factor == pytest.approx(2.3)


def test_run_flashcard_session_without_cards(tmp_db):
    init_db(tmp_db)
    assert run_flashcard_session(tmp_db, []) == 0


def test_cmd_dashboard_renders_forecast(tmp_db, three_reports, capsys):
    init_db(tmp_db)
    for report in three_reports:
        save_test_attempt(tmp_db, report)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        cmd_dashboard(tmp_db, worker=ForecastWorker(executor=pool), seed=3)
    out = capsys.readouterr().out
    assert "Rank Forecast" in out
    assert "Performance" in out


def test_cmd_dashboard_without_reports(tmp_db, capsys):
    init_db(tmp_db)
    cmd_dashboard(tmp_db, worker=MagicMock())
    assert "No test reports yet" in capsys.readouterr().out


def test_cmd_dashboard_reports_timeout(tmp_db, three_reports, capsys):
    init_db(tmp_db)
    save_test_attempt(tmp_db, three_reports[0])
    worker = MagicMock()
    worker.compute.side_effect = ForecastTimeout("forecast did not complete within 1s")
    cmd_dashboard(tmp_db, worker=worker)
    assert "did not complete" in capsys.readouterr().out


def test_cmd_syllabus_and_revise(tmp_db, capsys):
    init_db(tmp_db)
    seed_syllabus(tmp_db)
    save_test_attempt(tmp_db, make_report("t1", 150, 900, TODAY - timedelta(days=20)))
    save_question_outcomes(tmp_db, [
        make_log("t1", "Vector Algebra", QuestionStatus.WRONG, subject="maths", reason="Concept Gap"),
    ])
    cmd_syllabus(tmp_db, today=TODAY)
    cmd_revise(tmp_db, today=TODAY)
    out = capsys.readouterr().out
    assert "Vector Algebra" in out
    assert "Fading Memory" in out
    assert "Next best action" in out


def test_cmd_strategy(tmp_db, capsys):
    init_db(tmp_db)
    with patch("exam_analytics.app.Prompt.ask", side_effect=["advanced", "0.5"]):
        cmd_strategy(tmp_db)
    out = capsys.readouterr().out
    assert "Paper Strategy" in out
    assert "Risk" in out


def test_cmd_dashboard_unranked_history(tmp_db, capsys):
    init_db(tmp_db)
    for i, marks in enumerate((100, 140, 180)):
        save_test_attempt(tmp_db, make_report(f"t{i}", marks, None, TODAY - timedelta(days=10 - i)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        cmd_dashboard(tmp_db, worker=ForecastWorker(executor=pool))
    out = capsys.readouterr().out
    assert "Latest rank: n/a" in out
    assert "not enough data" in out


def test_cmd_progress_completes_topic(tmp_db, capsys):
    init_db(tmp_db)
    seed_syllabus(tmp_db)
    with patch("exam_analytics.app.Prompt.ask", side_effect=["ray optics", "status", "Completed"]):
        cmd_progress(tmp_db, today=TODAY)
    progress = load_topic_progress(tmp_db)["Ray Optics"]
    assert progress.status == SyllabusStatus.COMPLETED
    assert progress.completion_date == TODAY
    assert "Ray Optics" in capsys.readouterr().out


def test_cmd_progress_counts_revisions_and_subtopics(tmp_db):
    init_db(tmp_db)
    seed_syllabus(tmp_db)
    answers = ["Circle", "revision", "+1", "Circle", "revision", "+1",
               "Circle", "subtopic", "Tangents", "Circle", "strength", "weakness"]
    with patch("exam_analytics.app.Prompt.ask", side_effect=answers):
        for _ in range(4):
            cmd_progress(tmp_db)
    progress = load_topic_progress(tmp_db)["Circle"]
    assert progress.revision_count == 2
    assert progress.subtopics == {"Tangents": True}
    assert progress.strength == "weakness"
    assert progress.status == SyllabusStatus.NOT_STARTED


def test_cmd_progress_unknown_topic(tmp_db, capsys):
    init_db(tmp_db)
    seed_syllabus(tmp_db)
    with patch("exam_analytics.app.Prompt.ask", return_value="Alchemy"):
        cmd_progress(tmp_db)
    assert "Unknown topic" in capsys.readouterr().out
    assert load_topic_progress(tmp_db) == {}


def test_change_progress_keeps_first_completion_date():
    done = TopicProgress(status=SyllabusStatus.COMPLETED, completion_date=TODAY - timedelta(days=30))
    again = change_progress(done, "status", "Completed", today=TODAY)
    assert again.completion_date == TODAY - timedelta(days=30)
    revising = change_progress(done, "status", "Revising", today=TODAY)
    assert revising.status == SyllabusStatus.REVISING
    assert change_progress(TopicProgress(), "revision", "-1").revision_count == 0
    toggled = change_progress(TopicProgress(subtopics={"Lenses": True}), "subtopic", "Lenses")
    assert toggled.subtopics == {"Lenses": False}
    with pytest.raises(ValueError):
        change_progress(TopicProgress(), "rename")


def test_cmd_causes_reports_cascades_and_prerequisites(tmp_db, capsys):
    init_db(tmp_db)
    save_test_attempt(tmp_db, make_report("t1", 120, 900))
    logs = [make_log("t1", "Circle", QuestionStatus.WRONG, subject="maths", number=i) for i in range(1, 5)]
    logs.append(make_log("t1", "Straight Lines", QuestionStatus.WRONG, subject="maths", number=5))
    logs.append(make_log("t1", "Optics", number=6))
    save_question_outcomes(tmp_db, logs)
    cmd_causes(tmp_db)
    out = capsys.readouterr().out
    assert "Panic Cascades" in out
    assert "Q1-Q5" in out
    assert "Fatigue Curve" in out
    assert "may stem from" in out


def test_cmd_causes_without_logs(tmp_db, capsys):
    init_db(tmp_db)
    cmd_causes(tmp_db)
    assert "No question logs yet" in capsys.readouterr().out


def test_cmd_dashboard_shows_worst_panic_run(tmp_db, three_reports, capsys):
    init_db(tmp_db)
    for report in three_reports:
        save_test_attempt(tmp_db, report)
    save_question_outcomes(tmp_db, [make_log("t2", "Optics", QuestionStatus.WRONG, number=i) for i in range(4, 8)])
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        cmd_dashboard(tmp_db, worker=ForecastWorker(executor=pool), seed=3)
    out = capsys.readouterr().out
    assert "Worst panic run" in out
    assert "Q4-Q7" in out
