"""Marking-scheme resolution for legacy question-type labels."""
import logging
import re
from typing import Optional

from exam_analytics.models import MarkingScheme, QuestionStatus

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = MarkingScheme(correct=4, wrong=-1)

# "Single Correct (+4, -1)" or "Integer (+3, 0)"
SCHEME_PATTERN = re.compile(r"\(\s*\+(\d+)\s*,\s*(-?\d+)\s*\)")

KEYWORD_SCHEMES = [
    ("single", MarkingScheme(correct=3, wrong=-1)),
    ("multiple", MarkingScheme(correct=4, wrong=-2)),
    ("integer", MarkingScheme(correct=3, wrong=0)),
]


def parse_marking_scheme(
    question_type: Optional[str],
    positive: Optional[float] = None,
    negative: Optional[float] = None,
) -> MarkingScheme:
    """Resolve a marking scheme from explicit marks or a question-type label.

    Explicit positive/negative marks win over the label. Labels carrying
    "(+X, -Y)" are parsed; otherwise a few well-known type names map to their
    usual scheme, and anything else gets DEFAULT_SCHEME. Never raises.
    """
    if positive is not None and negative is not None:
        return MarkingScheme(correct=int(positive), wrong=int(negative))

    label = question_type or ""
    match = SCHEME_PATTERN.search(label)
    if match:
        return MarkingScheme(correct=int(match.group(1)), wrong=int(match.group(2)))

    lowered = label.lower()
    for keyword, scheme in KEYWORD_SCHEMES:
        if keyword in lowered:
            return scheme

    logger.debug("No marking scheme in %r, using default", label)
    return DEFAULT_SCHEME


def marks_for(status: QuestionStatus, scheme: MarkingScheme) -> Optional[int]:
    """Marks a question earns under a scheme. Partial credit is user-entered, so None."""
    if status == QuestionStatus.FULLY_CORRECT:
        return scheme.correct
    if status == QuestionStatus.WRONG:
        return scheme.wrong
    if status == QuestionStatus.UNANSWERED:
        return 0
    return None
