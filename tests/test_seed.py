# tests/test_seed.py
from exam_analytics.db import init_db, list_syllabus_topics
from exam_analytics.models import Weightage
from exam_analytics.seed import is_seeded, load_syllabus, seed_syllabus


def test_syllabus_covers_three_subjects():
    subjects = {t["subject"] for t in load_syllabus()}
    assert subjects == {"physics", "chemistry", "maths"}


def test_syllabus_weightage_values_are_valid():
    for topic in load_syllabus():
        Weightage(topic["weightage"])


def test_seed_syllabus(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    count = seed_syllabus(tmp_db)
    assert count == len(load_syllabus())
    assert is_seeded(tmp_db)
    topics = list_syllabus_topics(tmp_db)
    assert len(topics) == count
    assert {t.name for t in topics} >= {"Vector Algebra", "Mole Concept"}


def test_seed_is_idempotent(tmp_db):
    init_db(tmp_db)
    seed_syllabus(tmp_db)
    assert seed_syllabus(tmp_db) == 0
