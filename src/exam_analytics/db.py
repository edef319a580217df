"""SQLite reference store for test history, syllabus progress and flashcards.

Only raw fields are persisted. Mastery scores, retention and ranked lists are
always recomputed from these rows by the engine modules.
"""
import json
import os
import sqlite3
from datetime import date, datetime
from pathlib import Path

from exam_analytics.models import (
    FlashcardState, MarkingScheme, QuestionOutcome, QuestionStatus, SubjectScore,
    SyllabusStatus, SyllabusTopic, TestAttempt, TopicProgress, Weightage,
)

DEFAULT_DB_PATH = os.environ.get(
    "EXAM_ANALYTICS_DB", str(Path.home() / ".exam_analytics" / "analytics.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS syllabus_topics (
    name TEXT PRIMARY KEY,
    subject TEXT NOT NULL,
    weightage TEXT NOT NULL DEFAULT 'Medium'
);

CREATE TABLE IF NOT EXISTS test_attempts (
    id TEXT PRIMARY KEY,
    name TEXT,
    test_date TEXT NOT NULL,
    total_marks REAL NOT NULL,
    total_rank INTEGER
);

CREATE TABLE IF NOT EXISTS subject_scores (
    test_id TEXT NOT NULL REFERENCES test_attempts(id) ON DELETE CASCADE,
    subject TEXT NOT NULL,
    marks REAL NOT NULL DEFAULT 0,
    correct INTEGER NOT NULL DEFAULT 0,
    wrong INTEGER NOT NULL DEFAULT 0,
    partial INTEGER NOT NULL DEFAULT 0,
    unanswered INTEGER NOT NULL DEFAULT 0,
    rank INTEGER,
    max_marks REAL,
    PRIMARY KEY (test_id, subject)
);

CREATE TABLE IF NOT EXISTS question_outcomes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    test_id TEXT NOT NULL,
    subject TEXT NOT NULL,
    question_number INTEGER NOT NULL DEFAULT 0,
    topic TEXT NOT NULL DEFAULT 'N/A',
    question_type TEXT,
    positive_marks INTEGER,
    negative_marks INTEGER,
    status TEXT NOT NULL,
    marks_awarded REAL NOT NULL DEFAULT 0,
    confidence INTEGER,
    error_reason TEXT,
    time_spent REAL
);

CREATE TABLE IF NOT EXISTS topic_progress (
    topic TEXT PRIMARY KEY,
    status TEXT NOT NULL DEFAULT 'Not Started',
    strength TEXT,
    revision_count INTEGER NOT NULL DEFAULT 0,
    subtopics TEXT NOT NULL DEFAULT '{}',
    completion_date TEXT
);

CREATE TABLE IF NOT EXISTS flashcards (
    id TEXT PRIMARY KEY,
    topic TEXT NOT NULL,
    front TEXT,
    back TEXT,
    interval INTEGER NOT NULL DEFAULT 0,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    reviews INTEGER NOT NULL DEFAULT 0,
    next_review TEXT
);

CREATE TABLE IF NOT EXISTS flashcard_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    flashcard_id TEXT NOT NULL REFERENCES flashcards(id),
    rating INTEGER NOT NULL,
    reviewed_at TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


# --- Test attempts ---

def save_test_attempt(db_path: str, attempt: TestAttempt) -> None:
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO test_attempts (id, name, test_date, total_marks, total_rank)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET name=excluded.name, test_date=excluded.test_date,
            total_marks=excluded.total_marks, total_rank=excluded.total_rank""",
        (attempt.id, attempt.name, attempt.date.isoformat(), attempt.total.marks, attempt.total.rank),
    )
    conn.execute("DELETE FROM subject_scores WHERE test_id = ?", (attempt.id,))
    for subject, s in attempt.subjects.items():
        conn.execute(
            """INSERT INTO subject_scores
            (test_id, subject, marks, correct, wrong, partial, unanswered, rank, max_marks)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (attempt.id, subject, s.marks, s.correct, s.wrong, s.partial, s.unanswered, s.rank, s.max_marks),
        )
    conn.commit()
    conn.close()


def _subject_score(row: sqlite3.Row) -> SubjectScore:
    return SubjectScore(
        marks=row["marks"], correct=row["correct"], wrong=row["wrong"], partial=row["partial"],
        unanswered=row["unanswered"], rank=row["rank"], max_marks=row["max_marks"],
    )


def list_test_attempts(db_path: str) -> list[TestAttempt]:
    """All test attempts in chronological order."""
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM test_attempts ORDER BY test_date, id").fetchall()
    subject_rows = conn.execute("SELECT * FROM subject_scores ORDER BY subject").fetchall()
    conn.close()
    subjects: dict[str, dict[str, SubjectScore]] = {}
    for s in subject_rows:
        subjects.setdefault(s["test_id"], {})[s["subject"]] = _subject_score(s)
    attempts = []
    for r in rows:
        per_subject = subjects.get(r["id"], {})
        attempts.append(TestAttempt(
            id=r["id"],
            name=r["name"] or "",
            date=date.fromisoformat(r["test_date"]),
            total=SubjectScore(
                marks=r["total_marks"],
                rank=r["total_rank"],
                correct=sum(s.correct for s in per_subject.values()),
                wrong=sum(s.wrong for s in per_subject.values()),
                partial=sum(s.partial for s in per_subject.values()),
                unanswered=sum(s.unanswered for s in per_subject.values()),
            ),
            subjects=per_subject,
        ))
    return attempts


# --- Question outcomes ---

def save_question_outcomes(db_path: str, outcomes: list[QuestionOutcome]) -> int:
    """Store a batch of outcomes, replacing earlier rows for every test in the batch."""
    conn = get_connection(db_path)
    test_ids = sorted({o.test_id for o in outcomes})
    conn.executemany("DELETE FROM question_outcomes WHERE test_id = ?", [(t,) for t in test_ids])
    for o in outcomes:
        conn.execute(
            """INSERT INTO question_outcomes
            (test_id, subject, question_number, topic, question_type, positive_marks, negative_marks,
             status, marks_awarded, confidence, error_reason, time_spent)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                o.test_id, o.subject, o.question_number, o.topic, o.question_type,
                o.scheme.correct if o.scheme else None,
                o.scheme.wrong if o.scheme else None,
                o.status.value, o.marks_awarded, o.confidence, o.error_reason, o.time_spent,
            ),
        )
    conn.commit()
    conn.close()
    return len(outcomes)


def list_question_outcomes(db_path: str) -> list[QuestionOutcome]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM question_outcomes ORDER BY test_id, question_number, id").fetchall()
    conn.close()
    outcomes = []
    for r in rows:
        scheme = None
        if r["positive_marks"] is not None and r["negative_marks"] is not None:
            scheme = MarkingScheme(correct=r["positive_marks"], wrong=r["negative_marks"])
        outcomes.append(QuestionOutcome(
            test_id=r["test_id"],
            subject=r["subject"],
            question_number=r["question_number"],
            topic=r["topic"],
            question_type=r["question_type"] or "",
            scheme=scheme,
            status=QuestionStatus(r["status"]),
            marks_awarded=r["marks_awarded"],
            confidence=r["confidence"],
            error_reason=r["error_reason"],
            time_spent=r["time_spent"],
        ))
    return outcomes


# --- Syllabus ---

def list_syllabus_topics(db_path: str) -> list[SyllabusTopic]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM syllabus_topics ORDER BY subject, rowid").fetchall()
    conn.close()
    return [SyllabusTopic(name=r["name"], subject=r["subject"], weightage=Weightage(r["weightage"])) for r in rows]


def load_topic_progress(db_path: str) -> dict[str, TopicProgress]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM topic_progress").fetchall()
    conn.close()
    return {
        r["topic"]: TopicProgress(
            status=SyllabusStatus(r["status"]),
            strength=r["strength"],
            revision_count=r["revision_count"],
            subtopics=json.loads(r["subtopics"] or "{}"),
            completion_date=date.fromisoformat(r["completion_date"]) if r["completion_date"] else None,
        )
        for r in rows
    }


def save_topic_progress(db_path: str, topic: str, progress: TopicProgress) -> None:
    conn = get_connection(db_path)
    conn.execute(
        """INSERT OR REPLACE INTO topic_progress
        (topic, status, strength, revision_count, subtopics, completion_date)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (
            topic, progress.status.value, progress.strength, max(0, progress.revision_count),
            json.dumps(progress.subtopics),
            progress.completion_date.isoformat() if progress.completion_date else None,
        ),
    )
    conn.commit()
    conn.close()


# --- Flashcards ---

def row_to_card(row: sqlite3.Row) -> FlashcardState:
    return FlashcardState(
        id=row["id"],
        topic=row["topic"],
        front=row["front"] or "",
        back=row["back"] or "",
        interval=row["interval"],
        ease_factor=row["ease_factor"],
        reviews=row["reviews"],
        next_review=datetime.fromisoformat(row["next_review"]) if row["next_review"] else None,
    )


def list_flashcards(db_path: str) -> list[FlashcardState]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM flashcards").fetchall()
    conn.close()
    return [row_to_card(r) for r in rows]


def save_flashcards(db_path: str, cards: list[FlashcardState]) -> int:
    """Insert new cards; existing ids keep their review state."""
    conn = get_connection(db_path)
    inserted = 0
    for c in cards:
        cur = conn.execute(
            """INSERT OR IGNORE INTO flashcards
            (id, topic, front, back, interval, ease_factor, reviews, next_review)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                c.id, c.topic, c.front, c.back, c.interval, c.ease_factor, c.reviews,
                c.next_review.isoformat() if c.next_review else None,
            ),
        )
        inserted += cur.rowcount
    conn.commit()
    conn.close()
    return inserted
