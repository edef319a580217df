"""Flashcard scheduling, due-session selection and error cards."""
import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from exam_analytics.db import get_connection, list_flashcards, list_question_outcomes, row_to_card, save_flashcards
from exam_analytics.models import FlashcardState, QuestionOutcome, QuestionStatus
from exam_analytics.sm2 import sm2_update

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SIZE = 20
MASTERED_INTERVAL = 21


class CardNotFound(LookupError):
    """No flashcard with the requested id."""


def rate_card(card: FlashcardState, quality: int, today: Optional[date] = None) -> FlashcardState:
    """Return the card as it stands after a rating; the input card is untouched."""
    updated = sm2_update(
        quality=quality,
        reviews=card.reviews,
        ease_factor=card.ease_factor,
        interval=card.interval,
    )
    today = today or date.today()
    next_review = datetime.combine(today + timedelta(days=updated["interval"]), time.min)
    return replace(
        card,
        interval=updated["interval"],
        reviews=updated["reviews"],
        ease_factor=updated["ease_factor"],
        next_review=next_review,
    )


def _is_due(card: FlashcardState, now: datetime) -> bool:
    return card.next_review is None or card.next_review <= now


def select_due_cards(
    cards: Iterable[FlashcardState],
    now: Optional[datetime] = None,
    limit: int = DEFAULT_SESSION_SIZE,
) -> list[FlashcardState]:
    """Due cards, most overdue first, capped at `limit`. Never-scheduled cards lead."""
    now = now or datetime.now()
    due = [c for c in cards if _is_due(c, now)]
    due.sort(key=lambda c: (c.next_review is not None, c.next_review or datetime.min))
    return due[:limit]


def card_id_for(outcome: QuestionOutcome) -> str:
    return f"{outcome.test_id}-{outcome.question_number}"


def cards_from_errors(
    logs: list[QuestionOutcome],
    existing_ids: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> list[FlashcardState]:
    """Stub cards for wrong or partially correct answers that have no card yet."""
    now = now or datetime.now()
    seen = set(existing_ids)
    cards = []
    for log in logs:
        if log.status not in (QuestionStatus.WRONG, QuestionStatus.PARTIALLY_CORRECT):
            continue
        if not log.topic or log.topic == "N/A":
            continue
        card_id = card_id_for(log)
        if card_id in seen:
            continue
        seen.add(card_id)
        cards.append(FlashcardState(
            id=card_id,
            topic=log.topic,
            front=f"Topic: {log.topic}\nError: {log.error_reason or 'Incorrect Answer'}\nReview your mistake in test {log.test_id}",
            back="No solution recorded yet for this mistake.",
            next_review=now,
        ))
    return cards


def deck_stats(cards: list[FlashcardState], now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    return {
        "total": len(cards),
        "due": sum(1 for c in cards if _is_due(c, now)),
        "new": sum(1 for c in cards if c.reviews == 0),
        "mastered": sum(1 for c in cards if c.interval > MASTERED_INTERVAL),
    }


# --- Store-backed operations ---

def get_due_cards(db_path: str, limit: int = DEFAULT_SESSION_SIZE, now: Optional[datetime] = None) -> list[FlashcardState]:
    now = now or datetime.now()
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT * FROM flashcards
        WHERE next_review IS NULL OR next_review <= ?
        ORDER BY next_review ASC NULLS FIRST
        LIMIT ?""",
        (now.isoformat(), limit),
    ).fetchall()
    conn.close()
    return [row_to_card(r) for r in rows]


def generate_error_cards(db_path: str, now: Optional[datetime] = None) -> int:
    """Create cards for every logged mistake that lacks one. Returns the number added."""
    existing = {c.id for c in list_flashcards(db_path)}
    cards = cards_from_errors(list_question_outcomes(db_path), existing, now)
    added = save_flashcards(db_path, cards)
    if added:
        logger.info("Created %d error flashcards", added)
    return added


def record_flashcard_result(db_path: str, card_id: str, rating: int, today: Optional[date] = None) -> FlashcardState:
    """Rate a card as a single read-modify-write transaction."""
    conn = get_connection(db_path)
    conn.isolation_level = None
    try:
        conn.execute("BEGIN IMMEDIATE")
        row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
        if row is None:
            raise CardNotFound(card_id)
        updated = rate_card(row_to_card(row), rating, today)
        conn.execute(
            """UPDATE flashcards SET ease_factor=?, interval=?, reviews=?, next_review=?
            WHERE id=?""",
            (updated.ease_factor, updated.interval, updated.reviews, updated.next_review.isoformat(), card_id),
        )
        conn.execute(
            "INSERT INTO flashcard_results (flashcard_id, rating, reviewed_at) VALUES (?, ?, ?)",
            (card_id, rating, datetime.now().isoformat()),
        )
        conn.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()
    logger.info("Card %s rated %d, next review in %d days", card_id, rating, updated.interval)
    return updated
