# tests/test_review.py
from datetime import timedelta

from exam_analytics.models import QuestionStatus, SyllabusStatus, SyllabusTopic, TopicProgress, Weightage
from exam_analytics.review import next_best_action, rank_revision_topics, weak_topics

from conftest import TODAY, make_log, make_report


def topic(name, weightage=Weightage.MEDIUM, subject="physics"):
    return SyllabusTopic(name=name, subject=subject, weightage=weightage)


def test_fading_memory_outranks_weakness():
    topics = [topic("Optics", Weightage.HIGH), topic("Circle", Weightage.HIGH, "maths")]
    reports = [make_report("t1", 100, 10, TODAY - timedelta(days=10))]
    logs = [make_log("t1", "Optics")]
    progress = {"Circle": TopicProgress(strength="weakness")}
    items = rank_revision_topics(topics, logs, reports, progress, today=TODAY)
    assert [(i.topic, i.weight, i.reason) for i in items] == [
        ("Optics", 30, "Fading Memory"),
        ("Circle", 12, "Marked Weakness"),
    ]


def test_mildly_fading_topic_has_single_urgency():
    reports = [make_report("t1", 100, 10, TODAY - timedelta(days=4))]
    items = rank_revision_topics([topic("Optics")], [make_log("t1", "Optics")], reports, {}, today=TODAY)
    assert items[0].weight == 10
    assert items[0].reason == "Fading Memory"


def test_recent_topic_is_not_fading():
    reports = [make_report("t1", 100, 10, TODAY - timedelta(days=1))]
    progress = {"Optics": TopicProgress(status=SyllabusStatus.IN_PROGRESS)}
    items = rank_revision_topics([topic("Optics", Weightage.LOW)], [make_log("t1", "Optics")], reports, progress,
                                 today=TODAY)
    assert [(i.topic, i.weight, i.reason) for i in items] == [("Optics", 2, "In Progress")]


def test_each_topic_has_one_reason():
    reports = [make_report("t1", 100, 10, TODAY - timedelta(days=30))]
    progress = {"Optics": TopicProgress(status=SyllabusStatus.IN_PROGRESS, strength="weakness")}
    items = rank_revision_topics([topic("Optics")], [make_log("t1", "Optics")], reports, progress, today=TODAY)
    assert len(items) == 1
    assert items[0].reason == "Fading Memory"


def test_revision_list_capped_at_five():
    topics = [topic(f"T{i}") for i in range(8)]
    progress = {t.name: TopicProgress(strength="weakness") for t in topics}
    assert len(rank_revision_topics(topics, [], [], progress, today=TODAY)) == 5


def test_no_matching_topics_gives_empty_list():
    topics = [topic("Optics"), topic("Circle")]
    progress = {"Optics": TopicProgress(status=SyllabusStatus.COMPLETED)}
    assert rank_revision_topics(topics, [], [], progress, today=TODAY) == []


def test_next_best_action_picks_most_wrong_topic():
    logs = [
        make_log("t1", "Optics", QuestionStatus.WRONG, number=1, reason="Silly Mistake"),
        make_log("t1", "Optics", QuestionStatus.WRONG, number=2, reason="Silly Mistake"),
        make_log("t1", "Optics", QuestionStatus.WRONG, number=3, reason="Concept Gap"),
        make_log("t1", "Circle", QuestionStatus.WRONG, subject="maths", number=4),
        make_log("t1", "Circle", QuestionStatus.FULLY_CORRECT, subject="maths", number=5),
    ]
    action = next_best_action(logs)
    assert action.topic == "Optics"
    assert action.subject == "physics"
    assert action.error_count == 3
    assert action.dominant_reason == "Silly Mistake"
    assert action.potential_gain == 12


def test_next_best_action_without_reasons():
    action = next_best_action([make_log("t1", "Circle", QuestionStatus.WRONG)])
    assert action.dominant_reason == "General Practice"


def test_next_best_action_none_without_errors():
    assert next_best_action([make_log("t1", "Optics")]) is None
    assert next_best_action([]) is None


def test_weak_topics():
    logs = [
        make_log("t1", "Optics", QuestionStatus.WRONG, number=1),
        make_log("t1", "Optics", QuestionStatus.PARTIALLY_CORRECT, number=2),
        make_log("t1", "Optics", QuestionStatus.FULLY_CORRECT, number=3),
        make_log("t1", "Optics", QuestionStatus.UNANSWERED, number=4),
        make_log("t1", "Circle", QuestionStatus.FULLY_CORRECT, subject="maths", number=5),
        make_log("t1", "N/A", QuestionStatus.WRONG, number=6),
    ]
    weak = weak_topics(logs)
    assert weak == [{"topic": "Optics", "subject": "physics", "total": 3, "errors": 2, "error_rate": 66.7}]
