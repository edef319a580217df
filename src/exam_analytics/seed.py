"""Seed the database with the syllabus and its topic weightage."""
import json
import logging
from pathlib import Path

from exam_analytics.db import get_connection

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database has already been seeded with syllabus topics."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM syllabus_topics").fetchone()[0]
    conn.close()
    return count > 0


def load_syllabus() -> list[dict]:
    return json.loads((CONTENT_DIR / "syllabus.json").read_text(encoding="utf-8"))["topics"]


def seed_syllabus(db_path: str) -> int:
    """Insert every syllabus topic from syllabus.json. Safe to run repeatedly."""
    topics = load_syllabus()
    conn = get_connection(db_path)
    inserted = 0
    for topic in topics:
        cur = conn.execute(
            "INSERT OR IGNORE INTO syllabus_topics (name, subject, weightage) VALUES (?, ?, ?)",
            (topic["name"], topic["subject"], topic["weightage"]),
        )
        inserted += cur.rowcount
    conn.commit()
    conn.close()
    if inserted:
        logger.info("Seeded %d syllabus topics", inserted)
    return inserted
